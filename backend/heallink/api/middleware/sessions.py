"""
In-memory session store.

Entries map an opaque session id to an account id and expire after a
period of inactivity. Expired entries are swept lazily, at most once per
prune interval. Single-process only: a multi-instance deployment needs a
shared store.
"""

import logging
import secrets
import time
from datetime import timedelta
from typing import Callable, Optional
from uuid import UUID

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(
        self,
        ttl: timedelta = timedelta(hours=24),
        prune_interval: timedelta = timedelta(hours=24),
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl.total_seconds()
        self._prune_interval = prune_interval.total_seconds()
        self._clock = clock
        self._entries: dict[str, tuple[UUID, float]] = {}
        self._last_prune = clock()

    def __len__(self) -> int:
        return len(self._entries)

    def create(self, account_id: UUID) -> str:
        self._maybe_prune()
        sid = secrets.token_urlsafe(32)
        self._entries[sid] = (account_id, self._clock())
        return sid

    def get(self, sid: str) -> Optional[UUID]:
        """Return the account bound to ``sid`` and refresh its expiry."""
        self._maybe_prune()
        entry = self._entries.get(sid)
        if entry is None:
            return None
        account_id, last_seen = entry
        now = self._clock()
        if now - last_seen > self._ttl:
            self._entries.pop(sid, None)
            return None
        self._entries[sid] = (account_id, now)
        return account_id

    def destroy(self, sid: str) -> None:
        self._entries.pop(sid, None)

    def prune(self) -> int:
        now = self._clock()
        expired = [sid for sid, (_, seen) in self._entries.items() if now - seen > self._ttl]
        for sid in expired:
            self._entries.pop(sid, None)
        self._last_prune = now
        if expired:
            logger.debug("Pruned %d expired sessions", len(expired))
        return len(expired)

    def _maybe_prune(self) -> None:
        if self._clock() - self._last_prune >= self._prune_interval:
            self.prune()
