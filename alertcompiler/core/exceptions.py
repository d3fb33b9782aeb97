"""Alert compiler exceptions."""

from __future__ import annotations

from dataclasses import dataclass


class AlertCompilerError(Exception):
    """Base exception for alert compiler errors."""


class DecodeError(AlertCompilerError):
    """A native label, annotation or query payload could not be decoded."""


class UnknownTemplateError(AlertCompilerError):
    """No expression template is registered for the resource / rule type."""


class InconsistentQueryError(AlertCompilerError):
    """Rule entries of one alert disagree on their shared query parameters."""


class AmbiguousSeverityError(AlertCompilerError):
    """Two rule entries of one alert carry the same severity."""


class RouteResolutionError(AlertCompilerError):
    """The routing tree cannot resolve a receiver for an alert."""


class ConflictError(AlertCompilerError):
    """A native object changed since it was read (resource version mismatch).

    Retryable only through a fresh fetch-compile-write cycle.
    """

    def __init__(self, kind: str, name: str, expected: str, current: str) -> None:
        self.kind = kind
        self.name = name
        self.expected = expected
        self.current = current
        super().__init__(
            f"{kind} {name!r} was modified concurrently:"
            f" read version {expected!r}, current version {current!r}"
        )


@dataclass(frozen=True)
class GroupError:
    """An error scoped to one alert (namespace, name)."""

    namespace: str
    name: str
    error: AlertCompilerError

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}: {self.error}"


class AggregateCompileError(AlertCompilerError):
    """Per-alert errors collected during one forward compilation."""

    def __init__(self, errors: list[GroupError]) -> None:
        self.errors = list(errors)
        lines = "; ".join(str(e) for e in self.errors)
        super().__init__(f"{len(self.errors)} alert(s) failed to compile: {lines}")

    def for_alert(self, namespace: str, name: str) -> list[AlertCompilerError]:
        return [
            e.error for e in self.errors if e.namespace == namespace and e.name == name
        ]
