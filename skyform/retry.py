"""Backoff for API client calls.

Only the service API clients retry, and only on throttling and
unavailability answers. Resource operations and wait handlers never retry a
failed call themselves.

Example:
    @retry(on=on_status_code(429, 503), policy=API_BACKOFF)
    async def _request(...):
        ...
"""

from __future__ import annotations

import asyncio
import functools
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from loguru import logger

type RetryPredicate = Callable[[Exception], bool]


@dataclass(frozen=True, slots=True)
class BackoffPolicy:
    """Exponential backoff: ``min(base_delay * factor**attempt, max_delay)``.

    ``jitter`` adds up to 10% on top so concurrent resources that were
    throttled together do not retry in lockstep.
    """

    max_attempts: int = 5
    base_delay: float = 1.0
    factor: float = 2.0
    max_delay: float = 60.0
    jitter: bool = True

    def delay(self, attempt: int) -> float:
        delay = min(self.base_delay * (self.factor**attempt), self.max_delay)
        if self.jitter:
            delay += random.uniform(0, delay * 0.1)
        return delay


API_BACKOFF = BackoffPolicy(max_attempts=5, base_delay=0.5)


def _predicate(on: type[Exception] | tuple[type[Exception], ...] | RetryPredicate) -> RetryPredicate:
    match on:
        case type() | tuple():
            return lambda e: isinstance(e, on)
        case _:
            return on


def retry[**P, T](
    on: type[Exception] | tuple[type[Exception], ...] | RetryPredicate = Exception,
    policy: BackoffPolicy | None = None,
    **overrides: float | int | bool,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Retry an async call while ``on`` matches the raised exception.

    Args:
        on: An exception class, a tuple of them, or a predicate.
        policy: Backoff settings; ``BackoffPolicy()`` when omitted.
        **overrides: Individual ``BackoffPolicy`` fields, e.g.
            ``max_attempts=3``.
    """
    should_retry = _predicate(on)
    base = policy or BackoffPolicy()
    backoff = BackoffPolicy(**{
        "max_attempts": base.max_attempts,
        "base_delay": base.base_delay,
        "factor": base.factor,
        "max_delay": base.max_delay,
        "jitter": base.jitter,
        **overrides,
    })

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        log = logger.bind(component="retry", call=func.__qualname__)

        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    attempt += 1
                    if attempt >= backoff.max_attempts or not should_retry(e):
                        raise
                    delay = backoff.delay(attempt - 1)
                    log.warning(
                        "Attempt {attempt}/{max} failed with {err}, retrying in {delay:.1f}s",
                        attempt=attempt, max=backoff.max_attempts, err=e, delay=delay,
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator


def on_status_code(*codes: int) -> RetryPredicate:
    """Match errors whose ``status`` is one of ``codes`` (``HttpError``, ``ApiError``)."""

    def predicate(e: Exception) -> bool:
        return getattr(e, "status", None) in codes

    return predicate


__all__ = ["API_BACKOFF", "BackoffPolicy", "RetryPredicate", "retry", "on_status_code"]
