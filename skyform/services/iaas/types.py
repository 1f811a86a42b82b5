"""IaaS API response types.

Responses are plain JSON dicts typed with TypedDicts. The polymorphic route
sub-objects (next hop, destination) are parsed once at the boundary into
tagged unions, so the mappers never inspect raw discriminants.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar, NotRequired, TypedDict

from skyform.core.exceptions import MappingError

# ─── Routing tables ──────────────────────────────────────────────────


class RouteNexthopResponse(TypedDict):
    type: str
    value: NotRequired[str]


class RouteDestinationResponse(TypedDict):
    type: str
    value: str


class RouteResponse(TypedDict):
    id: str
    destination: NotRequired[RouteDestinationResponse]
    nexthop: NotRequired[RouteNexthopResponse]
    labels: NotRequired[dict[str, str]]
    createdAt: NotRequired[str]
    updatedAt: NotRequired[str]


class RouteListResponse(TypedDict):
    items: list[RouteResponse]


class RoutingTableResponse(TypedDict):
    id: str
    name: str
    description: NotRequired[str]
    labels: NotRequired[dict[str, str]]
    default: NotRequired[bool]
    systemRoutes: NotRequired[bool]
    createdAt: NotRequired[str]
    updatedAt: NotRequired[str]


class RoutingTableListResponse(TypedDict):
    items: list[RoutingTableResponse]


# ─── Networks ────────────────────────────────────────────────────────


class NetworkIPv4Response(TypedDict):
    nameservers: NotRequired[list[str]]
    prefixes: NotRequired[list[str]]
    gateway: NotRequired[str | None]
    publicIp: NotRequired[str]


class NetworkResponse(TypedDict):
    id: str
    name: str
    status: NotRequired[str]
    labels: NotRequired[dict[str, str]]
    ipv4: NotRequired[NetworkIPv4Response]
    routed: NotRequired[bool]
    routingTableId: NotRequired[str]
    createdAt: NotRequired[str]
    updatedAt: NotRequired[str]


# ─── Next hop ────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class NexthopIPv4:
    value: str
    type: ClassVar[str] = "ipv4"


@dataclass(frozen=True, slots=True)
class NexthopIPv6:
    value: str
    type: ClassVar[str] = "ipv6"


@dataclass(frozen=True, slots=True)
class NexthopInternet:
    type: ClassVar[str] = "internet"

    @property
    def value(self) -> None:
        return None


@dataclass(frozen=True, slots=True)
class NexthopBlackhole:
    type: ClassVar[str] = "blackhole"

    @property
    def value(self) -> None:
        return None


type Nexthop = NexthopIPv4 | NexthopIPv6 | NexthopInternet | NexthopBlackhole

NEXTHOP_TYPES: tuple[str, ...] = ("blackhole", "internet", "ipv4", "ipv6")


def _require_value(kind: str, raw: Mapping[str, Any]) -> str:
    value = raw.get("value")
    if not isinstance(value, str) or not value:
        raise MappingError(f"{kind} {raw.get('type')!r} requires a value")
    return value


def parse_nexthop(raw: Mapping[str, Any] | None) -> Nexthop | None:
    """Resolve the next hop wrapper into its variant; ``None`` for an absent wrapper."""
    if raw is None:
        return None
    match raw.get("type"):
        case "ipv4":
            return NexthopIPv4(_require_value("nexthop", raw))
        case "ipv6":
            return NexthopIPv6(_require_value("nexthop", raw))
        case "internet":
            return NexthopInternet()
        case "blackhole":
            return NexthopBlackhole()
        case other:
            raise MappingError(f"unexpected nexthop type: {other!r}")


def nexthop_payload(nexthop: Nexthop) -> dict[str, str]:
    match nexthop:
        case NexthopIPv4(value=value) | NexthopIPv6(value=value):
            return {"type": nexthop.type, "value": value}
        case NexthopInternet() | NexthopBlackhole():
            return {"type": nexthop.type}


# ─── Destination ─────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class DestinationCIDRv4:
    value: str
    type: ClassVar[str] = "cidrv4"


@dataclass(frozen=True, slots=True)
class DestinationCIDRv6:
    value: str
    type: ClassVar[str] = "cidrv6"


type Destination = DestinationCIDRv4 | DestinationCIDRv6

DESTINATION_TYPES: tuple[str, ...] = ("cidrv4", "cidrv6")


def parse_destination(raw: Mapping[str, Any] | None) -> Destination | None:
    if raw is None:
        return None
    match raw.get("type"):
        case "cidrv4":
            return DestinationCIDRv4(_require_value("destination", raw))
        case "cidrv6":
            return DestinationCIDRv6(_require_value("destination", raw))
        case other:
            raise MappingError(f"unexpected destination type: {other!r}")


def destination_payload(destination: Destination) -> dict[str, str]:
    return {"type": destination.type, "value": destination.value}


__all__ = [
    "RouteNexthopResponse",
    "RouteDestinationResponse",
    "RouteResponse",
    "RouteListResponse",
    "RoutingTableResponse",
    "RoutingTableListResponse",
    "NetworkIPv4Response",
    "NetworkResponse",
    "NexthopIPv4",
    "NexthopIPv6",
    "NexthopInternet",
    "NexthopBlackhole",
    "Nexthop",
    "NEXTHOP_TYPES",
    "parse_nexthop",
    "nexthop_payload",
    "DestinationCIDRv4",
    "DestinationCIDRv6",
    "Destination",
    "DESTINATION_TYPES",
    "parse_destination",
    "destination_payload",
]
