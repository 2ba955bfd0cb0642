"""
Error taxonomy for ledger interaction.

Nothing here is fatal to the process. Read failures degrade to "absent"
or "skip this cycle"; action failures degrade to "no state change".
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for failures talking to the external ledger."""


class TransientReadError(LedgerError):
    """A point read (order record or id counter) could not be completed."""


class SnapshotError(LedgerError):
    """The order snapshot could not be taken for this cycle."""


class ActionRejected(LedgerError):
    """A match, cancel or sweep transaction failed or was reverted."""

    def __init__(self, action: str, reason: str, tx_hash: str | None = None) -> None:
        super().__init__(f"{action} rejected: {reason}")
        self.action = action
        self.reason = reason
        self.tx_hash = tx_hash
