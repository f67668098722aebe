"""
Deadline-bounded awaits for calls to external services.

Every registry/processor call goes through `run_with_deadline`: the first of
{result, timeout} wins, and the timed-out operation is cancelled rather than left
running. Deadlines nest, so a per-call deadline can sit inside a whole-cycle one.
"""

from typing import Awaitable, Callable, TypeVar

import anyio

from src.platform.exception.exceptions import ExternalServiceError


_T = TypeVar('_T')


class DeadlineExceededError(ExternalServiceError):
    def __init__(self, operation: str, seconds: float) -> None:
        self.operation = operation
        self.seconds = seconds
        super().__init__(f'{operation} exceeded {seconds:g}s deadline')


async def run_with_deadline(
    operation: Callable[[], Awaitable[_T]],
    *,
    seconds: float,
    operation_name: str,
) -> _T:
    try:
        with anyio.fail_after(seconds):
            return await operation()
    except TimeoutError as e:
        raise DeadlineExceededError(operation_name, seconds) from e
