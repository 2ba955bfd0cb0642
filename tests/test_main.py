import dataclasses

import pytest

from matchbot.config.config import Settings
from matchbot.main import build_components
from matchbot.orchestrator.reconciliation_loop import EarlyStopScope, ReconciliationLoop

from test_config import ENV_KEYS, TEST_KEY


@pytest.fixture
def settings(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return Settings.load()


@pytest.mark.asyncio
async def test_read_only_wiring(settings):
    comps = await build_components(dataclasses.replace(settings, early_stop_scope="cycle"))
    try:
        loop = comps.reconciler
        assert isinstance(loop, ReconciliationLoop)
        assert loop.config.early_stop_scope is EarlyStopScope.CYCLE
        assert loop.sweeper is not None
        assert comps.gateway.executor.signer_address is None
        assert loop.planner.config.self_match_allowlist == frozenset()
    finally:
        await comps.gateway.close()
        await comps.http_client.aclose()


@pytest.mark.asyncio
async def test_signer_wiring(settings):
    cfg = dataclasses.replace(settings, private_key=TEST_KEY, expiry_sweep_interval=0.0, dust_threshold=7)
    comps = await build_components(cfg)
    try:
        signer = comps.gateway.executor.signer_address
        assert signer is not None
        planner = comps.reconciler.planner
        assert signer.lower() in planner.config.self_match_allowlist
        assert planner.config.dust_threshold == 7
        assert comps.reconciler.sweeper is None
    finally:
        await comps.gateway.close()
        await comps.http_client.aclose()
