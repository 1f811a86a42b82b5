"""Polling wait handlers for asynchronous cloud operations.

After a mutating call the API usually reports the resource in a transitional
state. A wait handler polls a status endpoint on a fixed interval until the
resource reaches a terminal state or the deadline passes.

Example:
    handler = WaitHandler(
        status_check(
            lambda: client.get_network(project_id, region, network_id),
            status_of=lambda n: n.get("status"),
            success={"CREATED"},
        ),
        timeout=15 * 60,
        description=f"network {network_id}",
    )
    network = await handler.wait()
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Collection
from dataclasses import dataclass

from loguru import logger
from tenacity import retry, retry_if_exception_type, stop_after_delay, wait_fixed

from skyform.core.exceptions import (
    ApiError,
    TerminalStateError,
    WaitTimeoutError,
    is_not_found,
)

TEMPORARY_STATUS_CODES = frozenset({502, 503, 504})

type CheckFn[T] = Callable[[], Awaitable[tuple[bool, T | None]]]


class _Pending(Exception):
    """Resource not in a terminal state yet - poll again."""


@dataclass(frozen=True, slots=True)
class WaitHandler[T]:
    """Blocking poll loop around a single check function.

    Args:
        check: Async function returning ``(done, response)``. Raising aborts
            the wait, except for transient API errors.
        timeout: Maximum time to wait in seconds.
        interval: Time between polls in seconds.
        sleep_before_wait: Delay before the first poll.
        temporary_error_retries: Consecutive 502/503/504 responses tolerated.
        description: Description for log and error messages.
    """

    check: CheckFn[T]
    timeout: float = 15 * 60
    interval: float = 5.0
    sleep_before_wait: float = 0.0
    temporary_error_retries: int = 5
    description: str = "resource"

    async def wait(self) -> T | None:
        log = logger.bind(component="wait", target=self.description)
        if self.sleep_before_wait > 0:
            await asyncio.sleep(self.sleep_before_wait)

        temporary_errors = 0

        @retry(
            stop=stop_after_delay(self.timeout),
            wait=wait_fixed(self.interval),
            retry=retry_if_exception_type(_Pending),
            reraise=True,
        )
        async def _poll() -> T | None:
            nonlocal temporary_errors
            try:
                done, response = await self.check()
            except ApiError as e:
                if e.status not in TEMPORARY_STATUS_CODES:
                    raise
                temporary_errors += 1
                if temporary_errors > self.temporary_error_retries:
                    raise
                log.debug("Temporary error {status}, polling again", status=e.status)
                raise _Pending(str(e)) from e

            temporary_errors = 0
            if not done:
                raise _Pending(self.description)
            return response

        try:
            result = await _poll()
        except _Pending as e:
            raise WaitTimeoutError(
                f"Timeout waiting for {self.description} after {self.timeout:.1f}s"
            ) from e
        log.debug("Wait finished")
        return result


def status_check[T](
    fetch: Callable[[], Awaitable[T]],
    status_of: Callable[[T], str | None],
    *,
    success: Collection[str],
    failure: Collection[str] = (),
    description: str = "resource",
) -> CheckFn[T]:
    """Check that is done on a success status and fails on a failure status."""

    async def check() -> tuple[bool, T | None]:
        response = await fetch()
        status = status_of(response)
        if status in success:
            return True, response
        if status is not None and status in failure:
            raise TerminalStateError(description, status)
        return False, response

    return check


def deleted_check[T](fetch: Callable[[], Awaitable[T]]) -> CheckFn[T]:
    """Check that is done once the resource is gone (HTTP 404)."""

    async def check() -> tuple[bool, T | None]:
        try:
            await fetch()
        except ApiError as e:
            if is_not_found(e):
                return True, None
            raise
        return False, None

    return check


__all__ = ["WaitHandler", "CheckFn", "status_check", "deleted_check", "TEMPORARY_STATUS_CODES"]
