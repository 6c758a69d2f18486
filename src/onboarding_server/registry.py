"""In-memory registry of live flows, keyed by (user_id, session_id).

Flows hold engine state that is not persisted, so they live in process
memory for as long as the user is answering.  Each entry carries a lock:
a flow's engine must not see overlapping calls, and concurrent requests for
the same session are serialized by :meth:`FlowRegistry.checkout`.

Entries untouched for longer than ``ttl_seconds`` are evicted.  The sweep
runs whenever a flow is added; an expired entry is also dropped when it is
looked up.  Entries whose lock is held are never evicted.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable

from onboarding_engine.errors import DuplicateFlowError, NotFoundError
from onboarding_engine.flow import OnboardingFlow

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    flow: OnboardingFlow
    touched_at: float
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class FlowRegistry:
    """Holds one :class:`OnboardingFlow` per user and session.

    ``ttl_seconds=0`` keeps flows until they are removed explicitly.
    ``clock`` returns seconds and defaults to :func:`time.monotonic`.
    """

    def __init__(
        self,
        ttl_seconds: float = 0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: dict[tuple[str, str], _Entry] = {}
        self._ttl = ttl_seconds
        self._clock = clock

    def __len__(self) -> int:
        return len(self._entries)

    def exists(self, user_id: str, session_id: str) -> bool:
        return self._lookup(user_id, session_id) is not None

    def add(self, flow: OnboardingFlow) -> None:
        self.evict_expired()
        key = (flow.user_id, flow.session_id)
        if key in self._entries:
            raise DuplicateFlowError(
                f"Flow already exists: user_id={flow.user_id}, session_id={flow.session_id}"
            )
        self._entries[key] = _Entry(flow, touched_at=self._clock())
        logger.debug("Registered flow user=%s session=%s (%d live)", *key, len(self._entries))

    def get(self, user_id: str, session_id: str) -> OnboardingFlow:
        return self._entry(user_id, session_id).flow

    def remove(self, user_id: str, session_id: str) -> None:
        self._entry(user_id, session_id)
        del self._entries[(user_id, session_id)]
        logger.debug("Removed flow user=%s session=%s", user_id, session_id)

    def evict_expired(self) -> int:
        """Drop every idle entry older than the TTL; return how many went."""
        if not self._ttl:
            return 0
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info("Evicted %d idle flow(s), %d live", len(expired), len(self._entries))
        return len(expired)

    @asynccontextmanager
    async def checkout(self, user_id: str, session_id: str) -> AsyncIterator[OnboardingFlow]:
        """Hold the flow's lock for the duration of the block."""
        entry = self._entry(user_id, session_id)
        async with entry.lock:
            try:
                yield entry.flow
            finally:
                entry.touched_at = self._clock()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _is_expired(self, entry: _Entry, now: float) -> bool:
        if not self._ttl or entry.lock.locked():
            return False
        return now - entry.touched_at > self._ttl

    def _lookup(self, user_id: str, session_id: str) -> _Entry | None:
        key = (user_id, session_id)
        entry = self._entries.get(key)
        if entry is not None and self._is_expired(entry, self._clock()):
            del self._entries[key]
            logger.info("Flow user=%s session=%s expired", user_id, session_id)
            return None
        return entry

    def _entry(self, user_id: str, session_id: str) -> _Entry:
        entry = self._lookup(user_id, session_id)
        if entry is None:
            raise NotFoundError(f"Flow not found: user_id={user_id}, session_id={session_id}")
        entry.touched_at = self._clock()
        return entry
