"""Order-matching reconciliation engine for an on-chain limit-order executor."""

__version__ = "0.1.0"
