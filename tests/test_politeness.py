"""Tests for the crawl politeness policy."""

import random

import pytest

from sitegrade.politeness import PolitenessPolicy


class FakeSleep:
    """Records requested sleeps instead of sleeping."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def fake_sleep():
    return FakeSleep()


class TestPolitenessDelay:
    """Test suite for delay calculations."""

    def test_jitter_bounds(self):
        """Test delay stays within [delay, delay * 1.5]."""
        policy = PolitenessPolicy(delay=1.0, rng=random.Random(42))

        for _ in range(100):
            assert 1.0 <= policy.politeness_delay() <= 1.5

    def test_zero_delay_has_no_jitter(self):
        """Test a zero delay never sleeps."""
        policy = PolitenessPolicy(delay=0)
        assert policy.politeness_delay() == 0.0

    def test_negative_delay_clamped(self):
        """Test negative delays are treated as zero."""
        assert PolitenessPolicy(delay=-5).delay == 0.0

    @pytest.mark.parametrize("attempt,expected", [(1, 1.0), (2, 2.0), (3, 4.0)])
    def test_backoff_doubles(self, attempt, expected):
        """Test exponential backoff from the base delay."""
        policy = PolitenessPolicy(delay=0.5)
        assert policy.backoff_delay(attempt) == expected

    def test_stagger_spreads_workers(self):
        """Test workers start evenly across one delay window."""
        policy = PolitenessPolicy(delay=1.0)

        offsets = [policy.stagger_delay(i, 4) for i in range(4)]

        assert offsets == [0.0, 0.25, 0.5, 0.75]
        assert policy.stagger_delay(0, 0) == 0.0


class TestPolitenessWaits:
    """Test suite for the awaitable waits."""

    @pytest.mark.asyncio
    async def test_wait_after_fetch(self, fake_sleep):
        """Test the jittered delay is slept and counted."""
        policy = PolitenessPolicy(delay=0.2, sleep=fake_sleep, rng=random.Random(1))

        waited = await policy.wait_after_fetch()

        assert fake_sleep.calls == [waited]
        assert 0.2 <= waited <= 0.3
        assert policy.total_waits == 1
        assert policy.total_wait_time == waited

    @pytest.mark.asyncio
    async def test_zero_waits_do_not_sleep(self, fake_sleep):
        """Test that zero-length waits skip the sleep call."""
        policy = PolitenessPolicy(delay=0, sleep=fake_sleep)

        assert await policy.wait_after_fetch() == 0.0
        assert await policy.wait_stagger(0, 3) == 0.0
        assert fake_sleep.calls == []
        assert policy.total_waits == 0

    @pytest.mark.asyncio
    async def test_backoff_and_reset(self, fake_sleep):
        """Test backoff sleeps and statistics reset."""
        policy = PolitenessPolicy(delay=0.1, sleep=fake_sleep)

        await policy.wait_backoff(1)
        await policy.wait_backoff(2)

        assert fake_sleep.calls == pytest.approx([0.2, 0.4])
        assert policy.total_wait_time == pytest.approx(0.6)

        policy.reset()
        assert policy.total_waits == 0
        assert policy.total_wait_time == 0.0
