"""Notification routing and silencing."""

from alertcompiler.routing.matcher import RouteMatch, RouteMatcher, resolve_receiver
from alertcompiler.routing.silences import find_silence, is_muted
from alertcompiler.routing.tree import DISABLED, ReceiverKind, ResolvedReceiver

__all__ = [
    "DISABLED",
    "ReceiverKind",
    "ResolvedReceiver",
    "RouteMatch",
    "RouteMatcher",
    "find_silence",
    "is_muted",
    "resolve_receiver",
]
