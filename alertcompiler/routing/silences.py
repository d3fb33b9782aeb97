"""Silence evaluation — is an alert currently muted by a suppression?"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime

from alertcompiler.core.exceptions import DecodeError
from alertcompiler.native.types import Silence, SilenceMatcher, SilenceState


def _aware(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=UTC)


def silence_matcher_matches(matcher: SilenceMatcher, labels: Mapping[str, str]) -> bool:
    value = labels.get(matcher.name, "")
    if matcher.is_regex:
        try:
            matched = re.fullmatch(matcher.value, value) is not None
        except re.error as exc:
            raise DecodeError(
                f"invalid regex in silence matcher {matcher.name}={matcher.value!r}: {exc}"
            ) from exc
    else:
        matched = value == matcher.value
    return matched if matcher.is_equal else not matched


def is_silence_active(silence: Silence, at: datetime) -> bool:
    """Active iff not expired and ``starts_at <= at < ends_at``."""
    if silence.status.state == SilenceState.EXPIRED:
        return False
    at = _aware(at)
    return _aware(silence.starts_at) <= at < _aware(silence.ends_at)


def silence_applies(silence: Silence, labels: Mapping[str, str], at: datetime) -> bool:
    if not silence.matchers:
        return False
    return is_silence_active(silence, at) and all(
        silence_matcher_matches(m, labels) for m in silence.matchers
    )


def find_silence(
    silences: Iterable[Silence],
    labels: Mapping[str, str],
    at: datetime | None = None,
) -> Silence | None:
    """Return the first silence muting *labels* at time *at* (default: now)."""
    at = at or datetime.now(UTC)
    for silence in silences:
        if silence_applies(silence, labels, at):
            return silence
    return None


def is_muted(
    silences: Iterable[Silence],
    labels: Mapping[str, str],
    at: datetime | None = None,
) -> bool:
    return find_silence(silences, labels, at) is not None
