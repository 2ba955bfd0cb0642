import json
import logging

from matchbot.infra.logging_cfg import AsyncQueueHandler, JsonFormatter, ThrottledFilter, build_logger, log_event


def _record(msg, level=logging.WARNING):
    return logging.LogRecord("matchbot", level, __file__, 1, msg, None, None)


def test_json_formatter():
    out = json.loads(JsonFormatter().format(_record("hello")))
    assert out["msg"] == "hello"
    assert out["level"] == "WARNING"
    assert "ts_iso" in out


def test_throttle_suppresses_repeats():
    f = ThrottledFilter(cooldown_sec=60.0)
    msg = json.dumps({"event": "tick_dropped", "dropped_total": 1})
    assert f.filter(_record(msg))
    assert not f.filter(_record(msg))


def test_throttle_keys_on_order():
    f = ThrottledFilter(cooldown_sec=60.0)
    assert f.filter(_record(json.dumps({"event": "order_read_failed", "order_id": 1})))
    assert f.filter(_record(json.dumps({"event": "order_read_failed", "order_id": 2})))
    assert not f.filter(_record(json.dumps({"event": "order_read_failed", "order_id": 1})))


def test_throttle_ignores_other_events_and_plain_text():
    f = ThrottledFilter(cooldown_sec=60.0)
    msg = json.dumps({"event": "match_ok"})
    assert f.filter(_record(msg))
    assert f.filter(_record(msg))
    assert f.filter(_record("plain text"))
    assert f.filter(_record("[1, 2]"))


def test_build_logger_writes_json_file(tmp_path):
    path = tmp_path / "matchbot.log"
    logger = build_logger("matchbot-test-file", level=logging.INFO, file_path=str(path), async_file=True)

    log_event(logger, "match_ok", buy_id=1, sell_id=2)
    for h in logger.handlers:
        h.flush()

    async_handlers = [h for h in logger.handlers if isinstance(h, AsyncQueueHandler)]
    assert len(async_handlers) == 1
    line = path.read_text().strip().splitlines()[-1]
    assert json.loads(json.loads(line)["msg"]) == {"event": "match_ok", "buy_id": 1, "sell_id": 2}

    for h in list(logger.handlers):
        h.close()
        logger.removeHandler(h)


def test_build_logger_is_idempotent():
    a = build_logger("matchbot-test-idem", file_path=None)
    b = build_logger("matchbot-test-idem", level=logging.DEBUG, file_path=None)
    assert a is b
    assert len(b.handlers) == 1
    assert b.handlers[0].level == logging.DEBUG
