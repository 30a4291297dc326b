"""Tests for retry_with_backoff."""

import asyncio

import pytest

from alfred.config.schema import RetryConfig
from alfred.core.cancel import CancellationToken
from alfred.core.errors import ApiError, NetworkError, RateLimitError, UnauthorizedError
from alfred.provider.retry import RetryPolicy, is_rate_limit_error, retry_with_backoff

FAST = RetryPolicy(max_attempts=3, initial_delay=0.0, max_delay=0.0)


class Script:
    """Zero-argument coroutine factory that fails with the given errors, then succeeds."""

    def __init__(self, *errors: BaseException, result: str = "ok") -> None:
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


class TestRetryWithBackoff:
    """Tests for the retry loop."""

    @pytest.mark.asyncio
    async def test_success_first_try(self) -> None:
        fn = Script()
        assert await retry_with_backoff(fn, FAST) == "ok"
        assert fn.calls == 1

    @pytest.mark.asyncio
    async def test_retries_transient_errors(self) -> None:
        fn = Script(NetworkError("reset"), ApiError.from_status(503, "busy"))
        retries = []

        result = await retry_with_backoff(
            fn, FAST, on_retry=lambda attempt, error, delay: retries.append(attempt)
        )

        assert result == "ok"
        assert fn.calls == 3
        assert retries == [1, 2]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self) -> None:
        fn = Script(NetworkError("a"), NetworkError("b"), NetworkError("c"))

        with pytest.raises(NetworkError, match="c"):
            await retry_with_backoff(fn, FAST)
        assert fn.calls == 3

    @pytest.mark.asyncio
    async def test_unauthorized_never_retried(self) -> None:
        fn = Script(UnauthorizedError())

        with pytest.raises(UnauthorizedError):
            await retry_with_backoff(fn, FAST)
        assert fn.calls == 1

    @pytest.mark.asyncio
    async def test_client_errors_not_retried(self) -> None:
        fn = Script(ApiError.from_status(400, "bad"))

        with pytest.raises(ApiError):
            await retry_with_backoff(fn, FAST)
        assert fn.calls == 1

    @pytest.mark.asyncio
    async def test_persistent_rate_limit_escalates(self) -> None:
        """Two 429s in a row stop retrying and call the escalation hook."""
        fn = Script(RateLimitError("429 one"), RateLimitError("429 two"))
        escalated = []
        policy = RetryPolicy(max_attempts=5, initial_delay=0.0, max_delay=0.0)

        with pytest.raises(RateLimitError, match="two"):
            await retry_with_backoff(fn, policy, on_persistent_rate_limit=escalated.append)

        assert fn.calls == 2
        assert len(escalated) == 1

    @pytest.mark.asyncio
    async def test_rate_limit_counter_resets(self) -> None:
        """A different failure between 429s resets the consecutive count."""
        fn = Script(RateLimitError("429"), NetworkError("reset"), RateLimitError("429"))
        policy = RetryPolicy(max_attempts=5, initial_delay=0.0, max_delay=0.0)

        assert await retry_with_backoff(fn, policy) == "ok"
        assert fn.calls == 4

    @pytest.mark.asyncio
    async def test_delays_grow_and_are_capped(self) -> None:
        fn = Script(NetworkError("a"), NetworkError("b"), NetworkError("c"))
        delays = []
        policy = RetryPolicy(max_attempts=4, initial_delay=0.01, max_delay=0.025, backoff_factor=2.0)

        await retry_with_backoff(fn, policy, on_retry=lambda a, e, d: delays.append(d))

        assert delays == [0.01, 0.02, 0.025]

    @pytest.mark.asyncio
    async def test_cancel_interrupts_wait(self) -> None:
        fn = Script(NetworkError("a"))
        token = CancellationToken()
        policy = RetryPolicy(max_attempts=3, initial_delay=30.0, max_delay=30.0)

        task = asyncio.create_task(retry_with_backoff(fn, policy, cancel_token=token))
        await asyncio.sleep(0.05)
        token.cancel()

        with pytest.raises(asyncio.CancelledError):
            await asyncio.wait_for(task, timeout=1.0)
        assert fn.calls == 1


class TestRetryPolicy:
    """Tests for RetryPolicy helpers."""

    def test_from_config(self) -> None:
        policy = RetryPolicy.from_config(RetryConfig(max_attempts=5, max_delay=60))
        assert policy == RetryPolicy(max_attempts=5, initial_delay=1.0, max_delay=60.0)

    def test_is_rate_limit_error(self) -> None:
        assert is_rate_limit_error(RateLimitError("slow"))
        assert is_rate_limit_error(RuntimeError("HTTP 429"))
        assert not is_rate_limit_error(NetworkError("reset"))
