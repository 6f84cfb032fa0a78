import pytest

from studio_admin.domain.errors import RateLimited, TransientInfraError
from studio_admin.domain.rate_limiter import RateLimiter


@pytest.mark.asyncio
async def test_allows_up_to_max_then_denies_with_retry_after(limiter, clock):
    for i in range(3):
        decision = await limiter.check("a@x.com", "reset", 3, 60)
        assert decision.allowed is True
        assert decision.attempts == i + 1

    clock.advance(20)
    denied = await limiter.check("a@x.com", "reset", 3, 60)
    assert denied.allowed is False
    assert denied.retry_after == 40


@pytest.mark.asyncio
async def test_new_window_after_elapsed(limiter, clock):
    for _ in range(3):
        await limiter.check("a@x.com", "reset", 3, 60)
    assert (await limiter.check("a@x.com", "reset", 3, 60)).allowed is False

    clock.advance(60)
    decision = await limiter.check("a@x.com", "reset", 3, 60)
    assert decision.allowed is True
    assert decision.attempts == 1


@pytest.mark.asyncio
async def test_retry_after_is_at_least_one_second(limiter, clock):
    await limiter.check("a@x.com", "reset", 1, 60)
    clock.advance(59.9)
    denied = await limiter.check("a@x.com", "reset", 1, 60)
    assert denied.allowed is False
    assert denied.retry_after == 1


@pytest.mark.asyncio
async def test_keys_are_scoped_by_purpose_and_identifier(limiter):
    await limiter.check("a@x.com", "reset", 1, 60)
    assert (await limiter.check("a@x.com", "reset", 1, 60)).allowed is False
    assert (await limiter.check("a@x.com", "confirm", 1, 60)).allowed is True
    assert (await limiter.check("b@x.com", "reset", 1, 60)).allowed is True


@pytest.mark.asyncio
async def test_enforce_raises_rate_limited(limiter):
    await limiter.enforce("a@x.com", "reset", 1, 60)
    with pytest.raises(RateLimited) as ei:
        await limiter.enforce("a@x.com", "reset", 1, 60)
    assert ei.value.retry_after > 0


@pytest.mark.asyncio
async def test_reset_clears_the_counter(limiter):
    await limiter.check("a@x.com", "reset", 1, 60)
    await limiter.reset("a@x.com", "reset")
    assert (await limiter.check("a@x.com", "reset", 1, 60)).allowed is True


class _AlwaysContendedStore:
    def __init__(self):
        self.swaps = 0

    async def get(self, key):
        return None

    async def compare_and_swap(self, key, expected, new, ttl_seconds):
        self.swaps += 1
        return False

    async def delete(self, key):
        pass


@pytest.mark.asyncio
async def test_persistent_contention_is_transient():
    store = _AlwaysContendedStore()
    with pytest.raises(TransientInfraError):
        await RateLimiter(store).check("a@x.com", "reset", 5, 60)
    assert store.swaps > 1
