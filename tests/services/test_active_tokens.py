from unittest.mock import AsyncMock

import pytest

from burnwatch.cache import TTLCache
from burnwatch.core.recovery.errors import CacheUnavailableError
from burnwatch.services.active_tokens import ActiveTokenTracker
from burnwatch.services.cache import ACTIVE_TOKENS_KEY, CacheStore

PHT = "0x885c99a787BE6b41cbf964174C771A9f7ec48e04"
BOB = "0x51363f073b1e4920fda7aa9e9d84ba97ede1560e"


class SteppingClock:
    def __init__(self, now: float):
        self.now = now

    def __call__(self) -> float:
        return self.now


def make_tracker(clock):
    store = CacheStore(local=TTLCache(clock=clock))
    return ActiveTokenTracker(store=store, window_seconds=300, clock=clock), store


@pytest.mark.asyncio
async def test_view_recorded_with_millisecond_score():
    clock = SteppingClock(1_700_000_000.0)
    tracker, store = make_tracker(clock)

    assert await tracker.record_view("BSC", PHT) is True

    rows = await store.zrange_with_scores(ACTIVE_TOKENS_KEY)
    assert rows == [(f"bsc:{PHT.lower()}", 1_700_000_000_000.0)]


@pytest.mark.asyncio
async def test_old_views_drop_out_of_the_window():
    clock = SteppingClock(1_700_000_000.0)
    tracker, _ = make_tracker(clock)

    await tracker.record_view("bsc", BOB)
    clock.now += 299
    await tracker.record_view("bsc", PHT)
    clock.now += 2

    assert await tracker.list_active() == [("bsc", PHT.lower())]


@pytest.mark.asyncio
async def test_recent_views_listed_most_recent_first():
    clock = SteppingClock(1_700_000_000.0)
    tracker, _ = make_tracker(clock)

    await tracker.record_view("bsc", PHT)
    clock.now += 1
    await tracker.record_view("rwa", BOB)
    clock.now += 1

    assert await tracker.list_active() == [("rwa", BOB.lower()), ("bsc", PHT.lower())]


@pytest.mark.asyncio
async def test_repeat_view_updates_score_not_membership():
    clock = SteppingClock(1_700_000_000.0)
    tracker, store = make_tracker(clock)

    await tracker.record_view("bsc", PHT)
    clock.now += 200
    await tracker.record_view("bsc", PHT.lower())
    clock.now += 200

    assert await tracker.list_active() == [("bsc", PHT.lower())]
    assert len(await store.zrange_with_scores(ACTIVE_TOKENS_KEY)) == 1


@pytest.mark.asyncio
async def test_whole_set_lapses_when_views_stop():
    clock = SteppingClock(1_700_000_000.0)
    tracker, store = make_tracker(clock)

    await tracker.record_view("bsc", PHT)
    clock.now += 301

    assert await store.zrange_with_scores(ACTIVE_TOKENS_KEY) == []


@pytest.mark.asyncio
async def test_store_failure_is_swallowed():
    store = AsyncMock(spec=CacheStore)
    store.zadd.side_effect = CacheUnavailableError("redis down")
    tracker = ActiveTokenTracker(store=store, window_seconds=300)

    assert await tracker.record_view("bsc", PHT) is False
    store.expire.assert_not_awaited()
