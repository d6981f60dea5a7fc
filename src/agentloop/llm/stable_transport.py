from typing import Any, Awaitable, Callable, Optional

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from agentloop.llm.retry_policy import DEFAULT_MAX_ATTEMPTS, is_retryable


class StableTransportError(Exception):
    """Raised when StableTransport exhausts retries."""


class StableTransport:
    """Retry-capable async transport wrapper for model calls."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_predicate: Callable[[BaseException], bool] = is_retryable,
        wait_strategy: Optional[Any] = None,
    ) -> None:
        """Initialize the transport wrapper.

        Args:
            max_attempts: Maximum attempts including the initial call.
            retry_predicate: Returns True for exceptions eligible for retry.
            wait_strategy: Tenacity wait strategy for backoff.
        """

        self._max_attempts = max(1, int(max_attempts))
        self._retry_predicate = retry_predicate
        self._wait_strategy = wait_strategy or wait_fixed(0)

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    async def call(self, operation: Callable[[], Awaitable[Any]]) -> Any:
        """Execute an async operation with retry handling.

        Args:
            operation: Zero-argument coroutine factory performing the call.

        Returns:
            The operation's result.

        Raises:
            StableTransportError: If every attempt failed with a retryable error.
        """

        if self._max_attempts == 1:
            return await operation()

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            retry=retry_if_exception(self._retry_predicate),
            wait=self._wait_strategy,
            reraise=False,
        )
        try:
            return await retrying(operation)
        except RetryError as exc:
            last = exc.last_attempt.exception()
            raise StableTransportError(str(last or exc)) from last
