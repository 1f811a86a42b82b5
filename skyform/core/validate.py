"""String attribute validators used in resource schemas."""

from __future__ import annotations

import ipaddress
import uuid as _uuid
from collections.abc import Callable
from dataclasses import dataclass

from skyform.core.diagnostics import Diagnostics
from skyform.core.identity import SEPARATOR
from skyform.core.values import StringValue, is_undefined


@dataclass(frozen=True, slots=True)
class Validator:
    description: str
    check: Callable[[str], bool]

    def validate(self, attribute: str, value: StringValue, diags: Diagnostics) -> None:
        if is_undefined(value):
            return
        if not self.check(value.value):
            diags.add_error(
                "Invalid Attribute Value",
                f"Attribute {attribute} {self.description}, got: {value.value}",
                attribute=attribute,
            )


def _is_uuid(raw: str) -> bool:
    try:
        _uuid.UUID(raw)
    except ValueError:
        return False
    return True


def uuid() -> Validator:
    return Validator("value must be an UUID", _is_uuid)


def no_uuid() -> Validator:
    return Validator("value must not be an UUID", lambda raw: not _is_uuid(raw))


def no_separator() -> Validator:
    return Validator(
        f"value must not contain identifier separator '{SEPARATOR}'",
        lambda raw: SEPARATOR not in raw,
    )


def ip(allow_zero_address: bool = True) -> Validator:
    """IP address; ``0.0.0.0`` and ``::`` only pass when ``allow_zero_address``."""

    def check(raw: str) -> bool:
        try:
            addr = ipaddress.ip_address(raw)
        except ValueError:
            return False
        return allow_zero_address or not addr.is_unspecified

    return Validator("value must be an IP address", check)


def cidr() -> Validator:
    def check(raw: str) -> bool:
        try:
            ipaddress.ip_network(raw, strict=False)
        except ValueError:
            return False
        return "/" in raw

    return Validator("value must be a CIDR", check)


def one_of(*values: str) -> Validator:
    allowed = ", ".join(repr(v) for v in values)
    return Validator(f"value must be one of: [{allowed}]", lambda raw: raw in values)


__all__ = ["Validator", "uuid", "no_uuid", "no_separator", "ip", "cidr", "one_of"]
