"""Typed routing tree — native Route objects folded into Leaf / Branch nodes."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum

from alertcompiler.core.exceptions import RouteResolutionError
from alertcompiler.native.labels import NULL_RECEIVER_NAME
from alertcompiler.native.types import Matcher, MatchType, Route


class ReceiverKind(StrEnum):
    NAMED = "named"
    DISABLED = "disabled"


@dataclass(frozen=True)
class ResolvedReceiver:
    """Outcome of routing: a named receiver or the disabled state."""

    kind: ReceiverKind
    name: str = ""

    @classmethod
    def from_name(cls, name: str) -> ResolvedReceiver:
        if name == NULL_RECEIVER_NAME:
            return DISABLED
        return cls(kind=ReceiverKind.NAMED, name=name)

    @property
    def is_disabled(self) -> bool:
        return self.kind == ReceiverKind.DISABLED

    @property
    def wire_name(self) -> str:
        return NULL_RECEIVER_NAME if self.is_disabled else self.name


DISABLED = ResolvedReceiver(kind=ReceiverKind.DISABLED)


@dataclass(frozen=True)
class RouteLeaf:
    matchers: tuple[Matcher, ...]
    receiver: ResolvedReceiver
    route: Route | None = None


@dataclass(frozen=True)
class RouteBranch:
    matchers: tuple[Matcher, ...]
    children: tuple[RouteNode, ...]
    fallback: ResolvedReceiver | None
    route: Route | None = None


@dataclass(frozen=True)
class RouteOverflow:
    """A subtree nested beyond the depth limit; matching it fails resolution."""

    matchers: tuple[Matcher, ...]
    depth: int
    route: Route | None = None


RouteNode = RouteLeaf | RouteBranch | RouteOverflow


def label_matches(matcher: Matcher, labels: Mapping[str, str]) -> bool:
    """Evaluate one Alertmanager matcher; absent labels read as ""."""
    value = labels.get(matcher.name, "")
    if matcher.match_type == MatchType.EQUAL:
        return value == matcher.value
    if matcher.match_type == MatchType.NOT_EQUAL:
        return value != matcher.value
    try:
        matched = re.fullmatch(matcher.value, value) is not None
    except re.error as exc:
        raise RouteResolutionError(
            f"invalid regex in route matcher {matcher.name}={matcher.value!r}: {exc}"
        ) from exc
    return matched if matcher.match_type == MatchType.REGEX else not matched


def all_match(matchers: Sequence[Matcher], labels: Mapping[str, str]) -> bool:
    return all(label_matches(m, labels) for m in matchers)


def build_tree(route: Route, max_depth: int, depth: int = 0) -> RouteNode:
    """Convert a native Route into a RouteNode.

    A route with nested routes becomes a branch whose fallback is its own
    receiver (None when it inherits from the parent). Routes nested deeper
    than *max_depth* become RouteOverflow nodes.
    """
    matchers = tuple(route.matchers)
    if depth > max_depth:
        return RouteOverflow(matchers=matchers, depth=depth, route=route)
    receiver = ResolvedReceiver.from_name(route.receiver) if route.receiver else None
    if not route.routes and receiver is not None:
        return RouteLeaf(matchers=matchers, receiver=receiver, route=route)
    children = tuple(build_tree(child, max_depth, depth + 1) for child in route.routes)
    return RouteBranch(matchers=matchers, children=children, fallback=receiver, route=route)
