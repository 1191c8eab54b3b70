from typing import Any, Awaitable, Callable, Protocol


class RetryPort(Protocol):
    """Re-invokes an async callable while it raises one of the retryable types.

    Submission passes `exception_types=(ConnectTransportError,)`: the POST that
    creates a job is only repeated when it provably never reached the
    provider, so a retry cannot create a second job. Everything else, a
    timeout after sending included, propagates on the first attempt.
    """

    async def execute(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """Call `func(*args, **kwargs)` until it succeeds or attempts run out.

        Policy overrides popped from kwargs: attempts, wait_initial, wait_max,
        exception_types. The last exception is re-raised once attempts are
        exhausted.
        """
        ...
