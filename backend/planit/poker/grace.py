from __future__ import annotations

import logging
from threading import RLock
from typing import Callable

from ..utils.clock import now_ms
from .models import PendingRemoval

logger = logging.getLogger(__name__)


class GraceScheduler:
    """One-shot removal timers keyed by identity.

    A timer only fires if the entry it armed is still the armed one when it
    gets the lock, so a cancel and a fire never both take effect.
    """

    def __init__(
        self,
        on_expire: Callable[[str], None],
        start_background_task: Callable[[Callable[[], None]], object],
        sleep: Callable[[float], object],
        grace_sec: float = 5.0,
        lock: RLock | None = None,
    ) -> None:
        self.grace_sec = grace_sec
        self._on_expire = on_expire
        self._lock = lock or RLock()
        self._start_background_task = start_background_task
        self._sleep = sleep
        self._pending: dict[str, PendingRemoval] = {}

    def schedule_removal(self, identity: str, after: float | None = None) -> PendingRemoval:
        delay = self.grace_sec if after is None else after
        with self._lock:
            if identity in self._pending:
                raise RuntimeError(f"removal already scheduled for {identity!r}")
            pending = PendingRemoval(identity=identity, due_at_ms=now_ms() + int(delay * 1000))
            self._pending[identity] = pending

        def _runner() -> None:
            self._sleep(delay)
            self._fire(pending)

        self._start_background_task(_runner)
        logger.debug("Removal of %s scheduled in %.1fs", identity, delay)
        return pending

    def cancel(self, identity: str) -> bool:
        with self._lock:
            pending = self._pending.pop(identity, None)
        if pending is not None:
            logger.debug("Removal of %s cancelled", identity)
        return pending is not None

    def is_pending(self, identity: str) -> bool:
        with self._lock:
            return identity in self._pending

    def pending(self) -> list[str]:
        with self._lock:
            return list(self._pending.keys())

    def _fire(self, pending: PendingRemoval) -> None:
        with self._lock:
            if self._pending.get(pending.identity) is not pending:
                return
            del self._pending[pending.identity]
            try:
                self._on_expire(pending.identity)
            except Exception:
                logger.exception("Removal of %s failed", pending.identity)
