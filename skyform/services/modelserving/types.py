"""Model serving API response types."""

from __future__ import annotations

from typing import NotRequired, TypedDict


class TokenResponse(TypedDict):
    id: str
    name: NotRequired[str]
    description: NotRequired[str]
    state: NotRequired[str]
    region: NotRequired[str]
    validUntil: NotRequired[str]
    content: NotRequired[str]


class TokenEnvelope(TypedDict):
    """Create, get and update all wrap the token in a ``token`` field."""

    token: NotRequired[TokenResponse]
    message: NotRequired[str]


__all__ = ["TokenResponse", "TokenEnvelope"]
