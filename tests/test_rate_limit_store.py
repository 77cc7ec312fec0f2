"""Unit tests for the in-memory rate limit store."""

import threading

import pytest

from app.adapters.rate_limit.base import RateLimitConfig, RateLimitStatus
from app.adapters.rate_limit.in_memory import InMemoryRateLimitStore, hash_identifier


@pytest.fixture
def store(clock) -> InMemoryRateLimitStore:
    return InMemoryRateLimitStore(clock=clock)


def test_admits_up_to_max_requests_then_rejects(store) -> None:
    config = RateLimitConfig(window_ms=60_000, max_requests=5)

    results = [store.check_limit("k", config) for _ in range(6)]

    assert results == [True] * 5 + [False]


def test_calls_within_window_then_new_window(store, clock) -> None:
    config = RateLimitConfig(window_ms=1000, max_requests=3)
    results = []
    for t in (0, 10, 20, 30):
        clock.current = t
        results.append(store.check_limit("u1", config))

    assert results == [True, True, True, False]

    clock.current = 1005
    assert store.check_limit("u1", config) is True
    status = store.get_status("u1")
    assert status == RateLimitStatus(remaining=2, reset_at=2005, total=3)


def test_window_is_live_at_reset_at(store, clock) -> None:
    config = RateLimitConfig(window_ms=1000, max_requests=1)
    assert store.check_limit("k", config) is True

    clock.current = 1000
    assert store.check_limit("k", config) is False

    clock.current = 1001
    assert store.check_limit("k", config) is True


def test_fractional_clock_never_shortens_window(store, clock) -> None:
    config = RateLimitConfig(window_ms=1000, max_requests=1)
    clock.current = 0.5
    assert store.check_limit("k", config) is True

    assert store.get_status("k").reset_at == 1001

    clock.current = 1000.9
    assert store.get_status("k") is not None
    assert store.check_limit("k", config) is False


def test_default_clock_is_integer_milliseconds() -> None:
    store = InMemoryRateLimitStore()

    store.check_limit("k", RateLimitConfig(window_ms=1000, max_requests=1))

    assert isinstance(store.get_status("k").reset_at, int)


def test_rejection_does_not_mutate_entry(store, clock) -> None:
    config = RateLimitConfig(window_ms=1000, max_requests=2)
    store.check_limit("k", config)
    store.check_limit("k", config)
    before = store.get_status("k")

    clock.advance(500)
    for _ in range(3):
        assert store.check_limit("k", config) is False

    assert store.get_status("k") == before


def test_identifiers_are_isolated(store) -> None:
    config = RateLimitConfig(window_ms=60_000, max_requests=2)
    assert store.check_limit("u1", config) is True
    assert store.check_limit("u1", config) is True
    assert store.check_limit("u1", config) is False

    assert store.check_limit("u2", config) is True
    assert store.check_limit("u2", config) is True
    assert store.get_status("u2").remaining == 0
    assert store.get_status("u1").remaining == 0


def test_get_status_absent_for_unknown_identifier(store) -> None:
    assert store.get_status("nobody") is None


def test_get_status_absent_for_expired_unswept_entry(store, clock) -> None:
    store.check_limit("k", RateLimitConfig(window_ms=100, max_requests=5))
    clock.advance(101)

    assert "k" in store
    assert store.get_status("k") is None


def test_remaining_decreases_by_one_and_floors_at_zero(store) -> None:
    config = RateLimitConfig(window_ms=60_000, max_requests=3)

    remaining = []
    for _ in range(5):
        store.check_limit("k", config)
        remaining.append(store.get_status("k").remaining)

    assert remaining == [2, 1, 0, 0, 0]


def test_status_total_follows_window_ceiling(store, clock) -> None:
    store.check_limit("k", RateLimitConfig(window_ms=100, max_requests=7))
    assert store.get_status("k").total == 7

    clock.advance(200)
    store.check_limit("k", RateLimitConfig(window_ms=100, max_requests=2))
    status = store.get_status("k")
    assert status.total == 2
    assert status.remaining == 1


def test_sweep_removes_only_expired_entries(store, clock) -> None:
    store.check_limit("short", RateLimitConfig(window_ms=100, max_requests=1))
    store.check_limit("long", RateLimitConfig(window_ms=10_000, max_requests=1))
    clock.advance(150)

    removed = store.sweep()

    assert removed == 1
    assert list(store.identifiers()) == ["long"]
    assert len(store) == 1


def test_sweep_on_empty_store_is_noop(store) -> None:
    assert store.sweep() == 0
    assert len(store) == 0


def test_dispose_clears_entries(store) -> None:
    store.check_limit("k", RateLimitConfig(window_ms=1000, max_requests=1))

    store.dispose()
    store.dispose()

    assert len(store) == 0
    assert store.get_status("k") is None


def test_empty_identifier_rejected(store) -> None:
    with pytest.raises(ValueError):
        store.check_limit("", RateLimitConfig(window_ms=1000, max_requests=1))


@pytest.mark.parametrize(
    "kwargs",
    [
        {"window_ms": 0, "max_requests": 1},
        {"window_ms": 1000, "max_requests": 0},
        {"window_ms": -5, "max_requests": 3},
    ],
)
def test_invalid_config(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        RateLimitConfig(**kwargs)


def test_concurrent_admissions_never_exceed_limit() -> None:
    store = InMemoryRateLimitStore()
    config = RateLimitConfig(window_ms=60_000, max_requests=50)
    admitted = []
    lock = threading.Lock()

    def _worker() -> None:
        for _ in range(20):
            if store.check_limit("shared", config):
                with lock:
                    admitted.append(1)

    threads = [threading.Thread(target=_worker) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(admitted) == 50
    assert store.get_status("shared").remaining == 0


def test_hash_identifier_is_stable_and_opaque() -> None:
    assert hash_identifier("global:ip:10.0.0.1") == hash_identifier("global:ip:10.0.0.1")
    assert "10.0.0.1" not in hash_identifier("global:ip:10.0.0.1")
    assert len(hash_identifier("x")) == 16
