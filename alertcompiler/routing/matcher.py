"""Route matcher — resolves which receiver a routing tree assigns to an alert."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from alertcompiler.core.exceptions import RouteResolutionError
from alertcompiler.native.types import Route
from alertcompiler.routing.tree import (
    DISABLED,
    ResolvedReceiver,
    RouteBranch,
    RouteLeaf,
    RouteNode,
    RouteOverflow,
    all_match,
    build_tree,
)


@dataclass(frozen=True)
class RouteMatch:
    receiver: ResolvedReceiver
    route: Route | None


def _walk(
    node: RouteNode,
    labels: Mapping[str, str],
    inherited: ResolvedReceiver | None,
) -> RouteMatch | None:
    """Depth-first match; returns None when *node* does not match."""
    if not all_match(node.matchers, labels):
        return None
    if isinstance(node, RouteOverflow):
        raise RouteResolutionError(f"routing tree nested deeper than depth {node.depth - 1}")
    if isinstance(node, RouteLeaf):
        return RouteMatch(receiver=node.receiver, route=node.route)
    return _descend(node, labels, node.fallback or inherited)


def _descend(
    node: RouteBranch, labels: Mapping[str, str], own: ResolvedReceiver | None
) -> RouteMatch:
    """First matching child of an already matched *node*, else *node* itself."""
    for child in node.children:
        found = _walk(child, labels, own)
        if found is not None:
            return found
    if own is None:
        raise RouteResolutionError("matched route has no receiver and none to inherit")
    return RouteMatch(receiver=own, route=node.route)


class RouteMatcher:
    """Resolves alerts against one routing tree.

    Nested routes are tried in declaration order and the first match wins;
    when none match, the enclosing route's receiver applies. A missing tree
    resolves every alert to the disabled state.
    """

    def __init__(self, root: Route | None, max_depth: int = 16) -> None:
        self._tree: RouteNode | None = build_tree(root, max_depth) if root else None

    def resolve(self, labels: Mapping[str, str]) -> RouteMatch:
        """Resolve a receiver for *labels*.

        Raises:
            RouteResolutionError: the tree is too deep along the matched path
                or no receiver can be determined.
        """
        if self._tree is None:
            return RouteMatch(receiver=DISABLED, route=None)
        # The root route matches every alert regardless of its matchers.
        root = self._tree
        if isinstance(root, RouteLeaf):
            return RouteMatch(receiver=root.receiver, route=root.route)
        if isinstance(root, RouteOverflow):
            raise RouteResolutionError("routing tree root exceeds depth limit")
        return _descend(root, labels, root.fallback)


def resolve_receiver(
    root: Route | None, labels: Mapping[str, str], max_depth: int = 16
) -> ResolvedReceiver:
    return RouteMatcher(root, max_depth).resolve(labels).receiver
