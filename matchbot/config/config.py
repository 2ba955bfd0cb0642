"""
Environment-driven configuration with validation.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import FrozenSet, List

from dotenv import load_dotenv

load_dotenv()

EARLY_STOP_SCOPES = ("group", "cycle")


def env_list(key: str) -> List[str]:
    raw = os.getenv(key, "")
    return [item.strip().lower() for item in raw.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    rpc_url: str
    private_key: str | None
    executor_address: str
    dust_threshold: int
    self_match_allowlist: List[str]
    reconcile_interval: float
    max_match_attempts: int
    price_tolerance_bps: int
    early_stop_scope: str  # "group" or "cycle"
    snapshot_concurrency: int
    expiry_sweep_interval: float  # 0 disables the sweep
    expiry_sweep_batch: int
    http_timeout: float
    receipt_timeout: float
    match_gas_limit: int
    cancel_gas_limit: int
    sweep_gas_limit: int
    metrics_port: int  # 0 disables the scrape endpoint
    log_level: str
    log_file: str | None

    def dump(self) -> dict:
        """Return a dict of settings for logging, with the key redacted."""
        data = self.__dict__.copy()
        if data.get("private_key"):
            data["private_key"] = "***"
        return data

    @classmethod
    def load(cls) -> "Settings":
        def _int_env(key: str, default: int) -> int:
            raw = os.getenv(key)
            if raw is None or raw == "":
                return default
            return int(raw)

        def _float_env(key: str, default: float) -> float:
            raw = os.getenv(key)
            if raw is None or raw == "":
                return default
            return float(raw)

        cfg = cls(
            rpc_url=os.getenv("RPC_URL", "https://api.skyhighblockchain.com"),
            private_key=os.getenv("PRIVATE_KEY") or None,
            executor_address=os.getenv("EXECUTOR_ADDRESS", "0xfc1224250d6f7E8aced166474849f966914D4141"),
            dust_threshold=_int_env("DUST_THRESHOLD", 1_000_000_000_000),
            self_match_allowlist=env_list("SELF_MATCH_ALLOWLIST"),
            reconcile_interval=_float_env("RECONCILE_INTERVAL_SEC", 10.0),
            max_match_attempts=_int_env("MAX_MATCH_ATTEMPTS", 3),
            price_tolerance_bps=_int_env("PRICE_TOLERANCE_BPS", 1),
            early_stop_scope=os.getenv("EARLY_STOP_SCOPE", "group").strip().lower(),
            snapshot_concurrency=_int_env("SNAPSHOT_CONCURRENCY", 16),
            expiry_sweep_interval=_float_env("EXPIRY_SWEEP_INTERVAL_SEC", 300.0),
            expiry_sweep_batch=_int_env("EXPIRY_SWEEP_BATCH", 50),
            http_timeout=_float_env("HTTP_TIMEOUT", 10.0),
            receipt_timeout=_float_env("TX_RECEIPT_TIMEOUT", 120.0),
            match_gas_limit=_int_env("MATCH_GAS_LIMIT", 1_000_000),
            cancel_gas_limit=_int_env("CANCEL_GAS_LIMIT", 300_000),
            sweep_gas_limit=_int_env("SWEEP_GAS_LIMIT", 5_000_000),
            metrics_port=_int_env("METRICS_PORT", 0),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_file=os.getenv("LOG_FILE", "matchbot.log") or None,
        )
        _sanity_check(cfg)
        cfg._validate()
        return cfg

    def resolve_signer(self):
        from eth_account import Account

        if self.private_key:
            return Account.from_key(self.private_key)
        raise RuntimeError("Missing credentials: set PRIVATE_KEY")

    def resolve_allowlist(self) -> FrozenSet[str]:
        """Configured allow-list plus the signer's own address, lower-cased."""
        allow = {a.lower() for a in self.self_match_allowlist}
        if self.private_key:
            allow.add(self.resolve_signer().address.lower())
        return frozenset(allow)

    def _validate(self) -> None:
        if self.reconcile_interval <= 0:
            raise ValueError("RECONCILE_INTERVAL_SEC must be > 0")
        if self.max_match_attempts < 1:
            raise ValueError("MAX_MATCH_ATTEMPTS must be >= 1")
        if self.dust_threshold < 0:
            raise ValueError("DUST_THRESHOLD must be >= 0")
        if self.price_tolerance_bps < 0:
            raise ValueError("PRICE_TOLERANCE_BPS must be >= 0")
        if self.early_stop_scope not in EARLY_STOP_SCOPES:
            raise ValueError(f"EARLY_STOP_SCOPE must be one of {EARLY_STOP_SCOPES}")
        if self.expiry_sweep_batch <= 0:
            raise ValueError("EXPIRY_SWEEP_BATCH must be > 0")
        if self.snapshot_concurrency <= 0:
            raise ValueError("SNAPSHOT_CONCURRENCY must be > 0")
        if self.expiry_sweep_interval < 0:
            raise ValueError("EXPIRY_SWEEP_INTERVAL_SEC must be >= 0")


def _sanity_check(cfg: Settings) -> None:
    """
    Log critical settings once at startup so overrides are obvious.
    """
    logger = logging.getLogger("matchbot")
    payload = {
        "event": "config_loaded",
        "rpc_url": cfg.rpc_url,
        "executor_address": cfg.executor_address,
        "dust_threshold": cfg.dust_threshold,
        "reconcile_interval": cfg.reconcile_interval,
        "max_match_attempts": cfg.max_match_attempts,
        "early_stop_scope": cfg.early_stop_scope,
        "allowlist": cfg.self_match_allowlist,
    }
    logger.info(json.dumps(payload))
