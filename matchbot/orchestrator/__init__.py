"""
Orchestrator package - fixed-period reconciliation scheduling.
"""

from matchbot.orchestrator.reconciliation_loop import (
    CycleResult,
    EarlyStopScope,
    LoopConfig,
    LoopState,
    ReconciliationLoop,
)

__all__ = [
    "CycleResult",
    "EarlyStopScope",
    "LoopConfig",
    "LoopState",
    "ReconciliationLoop",
]
