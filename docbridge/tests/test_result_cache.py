import anyio
import pytest

from docbridge.app.transform.cache import CacheManager, fingerprint
from docbridge.app.transform.forward import ForwardTransformer
from docbridge.tests.fakes import (
    FakePersistedKeys,
    container,
    make_snapshot,
    paragraph,
)

pytestmark = pytest.mark.anyio


class ManualClock:
    def __init__(self, start: int = 1_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now


def _result(text: str = "Hello world"):
    snapshot = make_snapshot(
        containers=[container("c1", "Intro")],
        paragraphs=[paragraph("p1", text, "c1")],
    )
    return ForwardTransformer(CacheManager()).transform(snapshot)


def test_fingerprint_ignores_volatile_fields():
    a = make_snapshot(paragraphs=[paragraph("p1", "Hello")], content="Hello")
    b = make_snapshot(paragraphs=[paragraph("p1", "Hello")], content="Hello")

    key = fingerprint(a)

    assert key == fingerprint(b)
    assert key.startswith("transform_")
    assert len(key) <= len("transform_") + 50


async def test_get_after_invalidate_all_misses():
    cache = CacheManager()
    cache.set("k", _result())

    assert cache.get("k") is not None

    cache.invalidate_all()

    assert cache.get("k") is None
    assert cache.invalidation_signal == 1


async def test_expired_entries_are_dropped_on_read():
    clock = ManualClock()
    cache = CacheManager(expiry_ms=1000, clock=clock)
    cache.set("k", _result())

    clock.now += 1001

    assert cache.get("k") is None
    assert len(cache) == 0


async def test_full_cache_evicts_least_used_oldest_first():
    clock = ManualClock()
    cache = CacheManager(max_size=5, clock=clock)

    for index in range(5):
        clock.now += 1
        cache.set(f"k{index}", _result())

    # k0 becomes the most used entry
    cache.get("k0")
    cache.get("k0")

    cache.set("new", _result())

    assert len(cache) == 5
    assert cache.get("k0") is not None
    assert cache.get("k1") is None
    assert cache.get("new") is not None


async def test_invalidation_clears_matching_persisted_keys():
    persisted = FakePersistedKeys(
        ["bridge-cache-1", "persist:state", "hybrid_result", "user_prefs"]
    )
    cache = CacheManager(persisted_keys=persisted)

    cache.invalidate_all()

    assert persisted.keys() == ["user_prefs"]


async def test_sweep_removes_expired_entries():
    clock = ManualClock()
    cache = CacheManager(expiry_ms=100, clock=clock)
    cache.set("old", _result())
    clock.now += 50
    cache.set("fresh", _result())
    clock.now += 60

    removed = cache.sweep()

    assert removed == 1
    assert cache.get("fresh") is not None


async def test_background_sweeper_stops_on_request():
    clock = ManualClock()
    cache = CacheManager(expiry_ms=10, sweep_interval_s=0.01, clock=clock)
    cache.set("k", _result())
    clock.now += 100

    async with anyio.create_task_group() as tg:
        tg.start_soon(cache.run_sweeper)
        await anyio.sleep(0.05)
        cache.stop()

    assert len(cache) == 0


async def test_separate_managers_do_not_share_signal():
    first = CacheManager()
    second = CacheManager()
    second.set("k", _result())

    first.invalidate_all()

    assert second.get("k") is not None
    assert second.invalidation_signal == 0
