import time
from typing import Callable, NamedTuple, Optional, Tuple, Type, TypeVar

T = TypeVar("T")


class Backoff(NamedTuple):
    """Exponential backoff; a factor of 1 gives a fixed interval."""

    initial: float = 1.0
    factor: float = 2.0
    maximum: float = 15.0

    def delay(self, attempt: int) -> float:
        """Seconds to wait after the given (zero-based) attempt."""
        return min(self.initial * (self.factor**attempt), self.maximum)


class RetryExhausted(Exception):
    """Raised by the helpers below when the attempt or time budget runs out."""

    def __init__(self, attempts: int, last_error: Optional[BaseException] = None):
        super().__init__(f"Gave up after {attempts} attempt(s)")
        self.attempts = attempts
        self.last_error = last_error


def retry(
    operation: Callable[[], T],
    max_attempts: int,
    backoff: Backoff,
    retry_on: Tuple[Type[BaseException], ...],
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Runs an operation until it succeeds, retrying only the given exception types.
    The last error is re-raised once max_attempts is reached.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    for attempt in range(max_attempts):
        try:
            return operation()
        except retry_on:
            if attempt == max_attempts - 1:
                raise
            sleep(backoff.delay(attempt))


def poll_until(
    operation: Callable[[], Optional[T]],
    backoff: Backoff,
    timeout: float,
    max_attempts: Optional[int] = None,
    tolerate: Tuple[Type[BaseException], ...] = (),
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """
    Calls operation until it returns something other than None.

    Bounded both by wall clock (timeout) and, optionally, by number of attempts.
    Exceptions listed in `tolerate` count as a failed attempt; the last one is kept
    on the RetryExhausted error.
    """
    deadline = clock() + timeout
    attempt = 0
    last_error = None
    while True:
        try:
            result = operation()
        except tolerate as e:
            last_error = e
            result = None
        if result is not None:
            return result

        attempt += 1
        if max_attempts is not None and attempt >= max_attempts:
            raise RetryExhausted(attempt, last_error)
        remaining = deadline - clock()
        if remaining <= 0:
            raise RetryExhausted(attempt, last_error)
        sleep(min(backoff.delay(attempt - 1), remaining))
