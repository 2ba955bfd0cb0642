"""
Account-level nonce coordinator.

Provides a single asyncio.Lock per signer account so every component
submitting transactions from that account serializes on it and the
pending nonce is never handed out twice.
"""

from __future__ import annotations

import asyncio
from typing import Dict


class NonceCoordinator:
    def __init__(self) -> None:
        # map account -> asyncio.Lock
        self._locks: Dict[str, asyncio.Lock] = {}
        self._guard = asyncio.Lock()

    async def get_lock(self, account: str) -> asyncio.Lock:
        """Return the shared lock for ``account`` (case-insensitive)."""
        key = account.lower()
        async with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = asyncio.Lock()
                self._locks[key] = lock
            return lock
