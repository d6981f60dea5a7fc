import httpx
import openai
from tenacity import wait_exponential_jitter

DEFAULT_MAX_ATTEMPTS = 1


def is_retryable(exc: BaseException) -> bool:
    """Return True for transient provider failures.

    Timeouts are excluded: a timed-out call surfaces to the caller.
    """

    if isinstance(exc, (openai.APITimeoutError, httpx.TimeoutException)):
        return False
    if isinstance(
        exc,
        (
            openai.RateLimitError,
            openai.InternalServerError,
            openai.APIConnectionError,
            httpx.ConnectError,
        ),
    ):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in {429, 500, 502, 503, 504}
    return False


def default_wait_strategy():
    """Return the default tenacity wait strategy."""

    return wait_exponential_jitter(initial=1.0, max=8.0)
