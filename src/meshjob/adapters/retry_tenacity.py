from typing import Any, Awaitable, Callable, Sequence, Type

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from meshjob.core.settings import logger


def _log_before_sleep(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(f"[retry] attempt {retry_state.attempt_number} failed, next in {delay:.2f}s error={exc}")


class TenacityRetryAdapter:
    """RetryPort with exponential backoff, backed by tenacity.

    Constructor arguments are the default policy; `execute` accepts
    `attempts`, `wait_initial`, `wait_max` and `exception_types` as call-time
    overrides. Any other keyword goes to the wrapped callable.
    """

    def __init__(
        self,
        attempts: int = 3,
        wait_initial: float = 0.5,
        wait_max: float = 4.0,
        exception_types: Sequence[Type[Exception]] = (Exception,),
    ) -> None:
        self.attempts = attempts
        self.wait_initial = wait_initial
        self.wait_max = wait_max
        self.exception_types = tuple(exception_types)

    def _policy(self, overrides: dict) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(overrides.pop("attempts", self.attempts)),
            wait=wait_exponential(
                multiplier=overrides.pop("wait_initial", self.wait_initial),
                max=overrides.pop("wait_max", self.wait_max),
            ),
            retry=retry_if_exception_type(tuple(overrides.pop("exception_types", self.exception_types))),
            before_sleep=_log_before_sleep,
            reraise=True,
        )

    async def execute(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        async for attempt in self._policy(kwargs):
            with attempt:
                return await func(*args, **kwargs)
