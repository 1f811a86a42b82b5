"""JSON-over-HTTP transport for the cloud API clients.

Every request carries a fresh ``X-Request-Id`` so a failed call can be
matched with the API's own logs; the id travels on ``HttpError``.
"""

from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import aiohttp
from loguru import logger

REQUEST_ID_HEADER = "X-Request-Id"

# ─── Errors ──────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class HttpError(Exception):
    """Non-2xx answer, or ``status == 0`` when the request never got one."""

    status: int
    body: str
    request_id: str | None = None

    def __str__(self) -> str:
        return f"HTTP {self.status}: {self.body}"

    @property
    def message(self) -> str:
        """The ``message`` field of a JSON error body, else the raw body."""
        try:
            payload = json.loads(self.body)
        except ValueError:
            return self.body
        if isinstance(payload, dict) and isinstance(payload.get("message"), str):
            return payload["message"]
        return self.body


# ─── Auth ────────────────────────────────────────────────────────────


@runtime_checkable
class Auth(Protocol):
    async def headers(self) -> dict[str, str]: ...


class BearerAuth:
    """Service account token sent as a bearer token."""

    def __init__(self, token: str) -> None:
        self._token = token

    async def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/json",
        }


# ─── Client ──────────────────────────────────────────────────────────


class HttpClient:
    """One aiohttp session bound to a service base URL.

    The session is opened on the first request and reopened if it was closed.
    """

    def __init__(
        self,
        base_url: str,
        auth: Auth | None = None,
        *,
        timeout: float = 30,
        default_headers: dict[str, str] | None = None,
        service: str = "http",
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._auth = auth
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._default_headers = dict(default_headers or {})
        self._session: aiohttp.ClientSession | None = None
        self._log = logger.bind(component="http", service=service)

    @property
    def base_url(self) -> str:
        return self._base_url

    async def _session_for_request(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def _headers(self, request_id: str) -> dict[str, str]:
        headers = {**self._default_headers, REQUEST_ID_HEADER: request_id}
        if self._auth is not None:
            headers.update(await self._auth.headers())
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | list[Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send one request and decode the JSON answer; empty bodies give ``None``.

        Raises:
            HttpError: On any status >= 400 and on transport failures.
        """
        request_id = str(uuid.uuid4())
        session = await self._session_for_request()
        headers = await self._headers(request_id)
        query = {k: v for k, v in (params or {}).items() if v is not None}
        log = self._log.bind(request_id=request_id)
        started = time.monotonic()

        try:
            async with session.request(
                method, f"{self._base_url}{path}", headers=headers, json=json, params=query
            ) as resp:
                body = await resp.read()
                elapsed_ms = (time.monotonic() - started) * 1000
                if resp.status >= 400:
                    text = body.decode(errors="replace")
                    log.warning(
                        "{method} {path} -> {status} in {ms:.0f}ms: {body}",
                        method=method, path=path, status=resp.status, ms=elapsed_ms, body=text[:500],
                    )
                    raise HttpError(resp.status, text, request_id)
                log.debug(
                    "{method} {path} -> {status} in {ms:.0f}ms",
                    method=method, path=path, status=resp.status, ms=elapsed_ms,
                )
                return await resp.json(content_type=None) if body else None
        except aiohttp.ClientError as e:
            log.warning("{method} {path} failed: {error}", method=method, path=path, error=e)
            raise HttpError(0, str(e), request_id) from e

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
            self._log.debug("HTTP session closed")

    async def __aenter__(self) -> HttpClient:
        await self._session_for_request()
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()


__all__ = ["Auth", "BearerAuth", "HttpClient", "HttpError", "REQUEST_ID_HEADER"]
