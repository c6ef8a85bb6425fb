import pytest

from tests.helpers.clock import FakeClock, install
from tests.helpers.fake_redis import FakeRedis
from tracker.errors import BackendUnavailableError
from tracker.history import HistoryTracker
from tracker.utils.keys import hash_it
from tracker.utils.time import utc_dt

@pytest.fixture
def clock(monkeypatch):
    return install(monkeypatch, FakeClock())

@pytest.fixture
def r():
    return FakeRedis()

@pytest.fixture
def tracker(r):
    h = HistoryTracker("orders", ttl_s=2, clean_interval_s=0, redis=r)
    yield h
    h.close()

def test_uses_sorted_set_named_after_tracker(tracker, r, clock):
    assert tracker.is_remote
    tracker.add("order-42")
    assert r.zsets == {"history:orders": {"order-42": clock.now}}

def test_has_is_a_score_window_check(tracker, r, clock):
    tracker.add("k")
    assert tracker.has("k")
    clock.advance(2.5)
    assert not tracker.has("k")
    # has() never deletes
    assert "k" in r.zsets["history:orders"]

def test_get_after_expiry_and_last_write_wins(tracker, clock):
    tracker.add("k", clock.now - 100)
    assert tracker.get("k") == (utc_dt(clock.now - 100), True)
    tracker.add("k", clock.now + 3)
    assert tracker.get("k") == (utc_dt(clock.now + 3), True)
    assert tracker.get("missing") == (None, False)

def test_clean_is_one_range_delete(tracker, r, clock):
    now = clock.now
    tracker.add("older", now - 2.5)
    tracker.add("edge", now - 2.0)
    tracker.add("fresh", now)
    r.calls.clear()
    assert tracker.clean() == 1
    assert r.calls == [("zremrangebyscore", "history:orders", "-inf", f"({now - 2.0!r}")]
    assert set(r.zsets["history:orders"]) == {"edge", "fresh"}

def test_remove_and_remove_absent(tracker, r):
    tracker.remove("ghost")
    tracker.add("k")
    tracker.remove("k")
    assert r.zsets["history:orders"] == {}

def test_hashed_members(r, clock):
    with HistoryTracker("h", ttl_s=5, clean_interval_s=0, redis=r, use_hashing=True) as h:
        h.add("user@example.com")
        assert list(r.zsets["history:h"]) == [hash_it("user@example.com")]
        assert h.has("user@example.com")

def test_unavailable_backend_reads_as_not_seen(tracker, r):
    r.fail = True
    tracker.add("k")
    assert tracker.has("k") is False
    assert tracker.get("k") == (None, False)
    tracker.remove("k")
    assert tracker.clean() == 0

def test_strict_mode_surfaces_failures(r):
    r.fail = True
    with HistoryTracker("s", ttl_s=5, clean_interval_s=0, redis=r, strict=True) as h:
        with pytest.raises(BackendUnavailableError):
            h.has("k")
        with pytest.raises(BackendUnavailableError):
            h.add("k")

def test_background_cleaner_survives_strict_failures(r):
    import time
    r.fail = True
    with HistoryTracker("s2", ttl_s=5, clean_interval_s=0.02, redis=r, strict=True) as h:
        time.sleep(0.1)
        assert h.cleaner_running
