"""Tests for the fixed-window rate limiter"""
from concurrent.futures import ThreadPoolExecutor

import pytest

from telemetry_gateway.services.rate_limiter import FixedWindowRateLimiter


@pytest.fixture
def limiter(clock):
    return FixedWindowRateLimiter('ingest', window_seconds=60, max_requests=3, clock=clock)


def test_rejects_after_max_admissions(limiter):
    decisions = [limiter.admit('10.0.0.1') for _ in range(4)]

    assert [d.allowed for d in decisions] == [True, True, True, False]
    assert [d.remaining for d in decisions] == [2, 1, 0, 0]


def test_admits_again_after_window_elapses(limiter, clock):
    for _ in range(3):
        limiter.admit('10.0.0.1')
    assert not limiter.admit('10.0.0.1').allowed

    clock.advance(60)

    decision = limiter.admit('10.0.0.1')
    assert decision.allowed
    assert decision.remaining == 2


def test_still_rejected_just_before_window_ends(limiter, clock):
    for _ in range(3):
        limiter.admit('10.0.0.1')
    clock.advance(59.5)

    decision = limiter.admit('10.0.0.1')
    assert not decision.allowed
    assert decision.retry_after == 1


def test_callers_are_counted_separately(limiter):
    for _ in range(3):
        limiter.admit('10.0.0.1')

    assert not limiter.admit('10.0.0.1').allowed
    assert limiter.admit('10.0.0.2').allowed


def test_instances_do_not_share_counters(clock):
    general = FixedWindowRateLimiter('general', window_seconds=900, max_requests=1, clock=clock)
    ingest = FixedWindowRateLimiter('ingest', window_seconds=60, max_requests=1, clock=clock)

    assert general.admit('10.0.0.1').allowed
    assert ingest.admit('10.0.0.1').allowed
    assert not general.admit('10.0.0.1').allowed


def test_disabled_limiter_always_admits(clock):
    limiter = FixedWindowRateLimiter('general', window_seconds=60, max_requests=1, clock=clock, enabled=False)
    assert all(limiter.admit('10.0.0.1').allowed for _ in range(10))


def test_reset_forgets_counters(limiter):
    for _ in range(4):
        limiter.admit('10.0.0.1')
    limiter.reset('10.0.0.1')
    assert limiter.admit('10.0.0.1').allowed


def test_expired_windows_are_swept(limiter, clock):
    limiter.admit('10.0.0.1')
    limiter.admit('10.0.0.2')
    clock.advance(120)

    limiter.admit('10.0.0.3')

    assert set(limiter._counters) == {'10.0.0.3'}


def test_no_increment_is_lost_under_concurrency(clock):
    limiter = FixedWindowRateLimiter('ingest', window_seconds=60, max_requests=500, clock=clock)

    with ThreadPoolExecutor(max_workers=16) as pool:
        decisions = list(pool.map(lambda _: limiter.admit('10.0.0.1'), range(500)))

    assert all(d.allowed for d in decisions)
    assert sorted(d.remaining for d in decisions) == list(range(500))
    assert not limiter.admit('10.0.0.1').allowed
