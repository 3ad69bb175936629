from __future__ import annotations

import pytest

from conftest import MARK_KEY, T0, FailingStore

MAX_MS = 15 * 60 * 1000


class TestResolveStart:
    def test_prefers_cached_mark(self, timer, store):
        timer.begin_fresh()
        store.set_item(MARK_KEY, str(T0 - 5000))

        assert timer.resolve_start() == T0

    def test_falls_back_to_durable_mark(self, timer, store):
        store.set_item(MARK_KEY, str(T0 - 60_000))

        assert timer.resolve_start() == T0 - 60_000
        assert timer.cached_mark == T0 - 60_000

    def test_stamps_now_when_nothing_stored(self, timer, store):
        assert timer.resolve_start() == T0
        assert store.get_item(MARK_KEY) == str(T0)

    def test_stays_stable_after_another_process_clears_storage(self, timer, store, clock):
        timer.resolve_start()
        store.remove_item(MARK_KEY)
        clock.advance(120)

        assert timer.resolve_start() == T0

    def test_works_with_storage_denied(self, make_timer, clock):
        timer = make_timer(FailingStore())

        assert timer.resolve_start() == T0
        clock.advance(60)
        assert timer.resolve_start() == T0

    def test_ignores_garbage_in_storage(self, timer, store):
        store.set_item(MARK_KEY, "not-a-number")

        assert timer.resolve_start() == T0


class TestExpiry:
    @pytest.mark.parametrize("elapsed_ms", [0, 1, 60_000, MAX_MS - 1000, MAX_MS - 1])
    def test_not_expired_before_max(self, timer, clock, elapsed_ms):
        timer.begin_fresh()
        clock.now = T0 + elapsed_ms

        assert timer.is_expired() is False

    @pytest.mark.parametrize("elapsed_ms", [MAX_MS, MAX_MS + 1, 2 * MAX_MS])
    def test_expired_from_max_on(self, timer, clock, elapsed_ms):
        timer.begin_fresh()
        clock.now = T0 + elapsed_ms

        assert timer.is_expired() is True

    def test_remaining_never_negative(self, timer, clock):
        timer.begin_fresh()
        clock.now = T0 + 2 * MAX_MS

        assert timer.remaining_ms() == 0
        assert timer.expires_at() == T0 + MAX_MS


class TestScheduling:
    @pytest.mark.asyncio
    async def test_deadline_fires_at_remaining_time(self, timer, scheduler):
        fired: list[int] = []
        timer.begin_fresh()

        async def on_due():
            if timer.is_expired():
                fired.append(scheduler.clock.now)

        timer.arm(on_due)
        await scheduler.advance(15 * 60)

        assert fired[0] == T0 + MAX_MS

    @pytest.mark.asyncio
    async def test_rearm_cancels_previous_handles(self, timer, scheduler):
        async def noop():
            return None

        timer.begin_fresh()
        timer.arm(noop)
        first = scheduler.live_handles
        timer.arm(noop)

        assert all(h.cancelled for h in first)
        assert len(scheduler.live_handles) == 2

    @pytest.mark.asyncio
    async def test_forget_clears_cache_and_storage(self, timer, scheduler, store):
        async def noop():
            return None

        timer.begin_fresh()
        timer.arm(noop)
        timer.forget()

        assert timer.cached_mark is None
        assert store.get_item(MARK_KEY) is None
        assert scheduler.live_handles == []
        assert timer.armed is False
