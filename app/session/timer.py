from __future__ import annotations

from app.core.logging import get_logger
from app.session.scheduler import AsyncCallback, Handle, Scheduler
from app.session.storage import MarkStore

logger = get_logger(__name__)


class SessionTimer:
    """Absolute lifetime of one logical login.

    The start mark is resolved in three tiers: the in-process cache, then the
    durable slot, then "now" as a last resort. Once resolved it is cached, so
    the start time stays consistent for the life of the process even if
    storage disappears or another process clears it.
    """

    def __init__(
        self,
        marks: MarkStore,
        scheduler: Scheduler,
        max_duration_ms: int,
        recheck_seconds: float,
    ) -> None:
        self._marks = marks
        self._scheduler = scheduler
        self._max_ms = max_duration_ms
        self._recheck = recheck_seconds
        self._cached: int | None = None
        self._deadline: Handle | None = None
        self._interval: Handle | None = None

    @property
    def max_duration_ms(self) -> int:
        return self._max_ms

    @property
    def cached_mark(self) -> int | None:
        return self._cached

    @property
    def armed(self) -> bool:
        return self._deadline is not None or self._interval is not None

    def now(self) -> int:
        return self._marks.now()

    def resolve_start(self) -> int:
        if self._cached is not None:
            return self._cached
        stored = self._marks.read_mark()
        if stored is not None:
            self._cached = stored
            return stored
        stamped = self._marks.now()
        self._cached = stamped
        self._marks.write_mark(stamped)
        logger.info("session_mark_stamped", started_at=stamped)
        return stamped

    def begin_fresh(self) -> int:
        """Stamp a new mark for an explicit sign-in, replacing any previous one."""
        stamped = self._marks.now()
        self._cached = stamped
        self._marks.write_mark(stamped)
        return stamped

    def elapsed_ms(self) -> int:
        return max(0, self._marks.now() - self.resolve_start())

    def remaining_ms(self) -> int:
        return max(0, self._max_ms - self.elapsed_ms())

    def expires_at(self) -> int:
        return self.resolve_start() + self._max_ms

    def is_expired(self) -> bool:
        return self.elapsed_ms() >= self._max_ms

    def arm(self, callback: AsyncCallback) -> None:
        """Arm one deferred check at the exact remaining time plus a recurring backstop."""
        self.cancel()

        async def on_deadline() -> None:
            self._deadline = None
            if not self.is_expired():
                # Fired early (timer granularity); aim again at the real deadline.
                self._deadline = self._scheduler.call_later(
                    self.remaining_ms() / 1000, on_deadline
                )
                return
            await callback()

        self._deadline = self._scheduler.call_later(self.remaining_ms() / 1000, on_deadline)
        self._interval = self._scheduler.call_every(self._recheck, callback)

    def cancel(self) -> None:
        if self._deadline is not None:
            self._deadline.cancel()
            self._deadline = None
        if self._interval is not None:
            self._interval.cancel()
            self._interval = None

    def forget(self) -> None:
        """Cancel timers and drop the mark from both the cache and durable storage."""
        self.cancel()
        self._cached = None
        self._marks.clear_mark()
