"""Level aggregation — folds per-severity rule entries into one alert."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog

from alertcompiler.core.exceptions import (
    AlertCompilerError,
    AmbiguousSeverityError,
    DecodeError,
    GroupError,
    InconsistentQueryError,
    UnknownTemplateError,
)
from alertcompiler.core.types import (
    AlertLevel,
    BaseQueryParams,
    QueryParams,
    is_valid_duration,
)
from alertcompiler.native.labels import (
    ALERT_NAME_LABEL,
    ALERT_NAMESPACE_LABEL,
    rule_alert_name,
    rule_message,
    rule_namespace,
    rule_query_payload,
    rule_severity,
)
from alertcompiler.native.types import Rule, RuleGroup
from alertcompiler.rules.codec import decode_query_params
from alertcompiler.rules.templates import (
    TemplateRegistry,
    build_rule_expression,
    expressions_equal,
    strip_comparison,
)

logger = structlog.stdlib.get_logger()


@dataclass(frozen=True)
class RuleEntry:
    """A native rule together with the group it was read from."""

    rule: Rule
    group: RuleGroup
    default_namespace: str = ""

    @property
    def key(self) -> tuple[str, str]:
        labels = self.rule.labels
        namespace = labels.get(ALERT_NAMESPACE_LABEL) or self.default_namespace
        name = labels.get(ALERT_NAME_LABEL) or self.rule.alert
        return namespace, name


@dataclass
class LevelGroup:
    """All severity levels of one alert, decoded and validated."""

    namespace: str
    name: str
    for_: str
    message: str
    query_params: BaseQueryParams
    levels: list[AlertLevel]
    expression: str
    verified: bool
    rule_group: RuleGroup | None = None
    entries: list[RuleEntry] = field(default_factory=list)


def flatten_groups(groups: Iterable[RuleGroup], default_namespace: str = "") -> list[RuleEntry]:
    return [
        RuleEntry(rule=rule, group=group, default_namespace=default_namespace)
        for group in groups
        for rule in group.rules
    ]


def group_entries(entries: Iterable[RuleEntry]) -> dict[tuple[str, str], list[RuleEntry]]:
    """Bucket entries by (namespace, alert name), keeping first-seen order."""
    buckets: dict[tuple[str, str], list[RuleEntry]] = {}
    for entry in entries:
        buckets.setdefault(entry.key, []).append(entry)
    return buckets


def _shared(params: QueryParams) -> tuple[str, str, str, tuple[tuple[str, str], ...]]:
    return (
        params.resource,
        params.rule_type,
        params.unit,
        tuple(sorted(params.label_pairs.items())),
    )


def build_level_group(
    namespace: str,
    name: str,
    entries: list[RuleEntry],
    registry: TemplateRegistry,
    verify: bool = True,
) -> LevelGroup:
    """Aggregate the entries of one alert into a LevelGroup.

    Raises:
        DecodeError: missing labels/annotation or malformed payload.
        InconsistentQueryError: entries disagree on shared query params or ``for``.
        AmbiguousSeverityError: two entries share one severity.
    """
    decoded: list[tuple[RuleEntry, QueryParams, AlertLevel]] = []
    for entry in entries:
        rule = entry.rule
        rule_alert_name(rule)
        rule_namespace(rule)
        params = decode_query_params(rule_query_payload(rule))
        level = AlertLevel(
            compare_op=params.compare_op,
            compare_value=params.compare_value,
            severity=rule_severity(rule),
        )
        decoded.append((entry, params, level))

    first_entry, first_params, _ = decoded[0]
    for entry, params, _ in decoded[1:]:
        if _shared(params) != _shared(first_params):
            raise InconsistentQueryError(
                f"rules of alert {name!r} have different query params:"
                f" {_shared(first_params)} != {_shared(params)}"
            )
        if entry.rule.for_ != first_entry.rule.for_:
            raise InconsistentQueryError(
                f"rules of alert {name!r} have different durations:"
                f" {first_entry.rule.for_!r} != {entry.rule.for_!r}"
            )

    if not is_valid_duration(first_entry.rule.for_):
        raise DecodeError(
            f"alert {name!r} has invalid duration {first_entry.rule.for_!r}"
        )

    seen: set[str] = set()
    for _, _, level in decoded:
        if level.severity in seen:
            raise AmbiguousSeverityError(
                f"alert {name!r} has more than one rule with severity {level.severity.value!r}"
            )
        seen.add(level.severity)

    decoded.sort(key=lambda item: item[2].severity.rank)

    expression, verified = _resolve_expression(namespace, name, decoded, registry, verify)

    return LevelGroup(
        namespace=namespace,
        name=name,
        for_=first_entry.rule.for_,
        message=next((rule_message(e.rule) for e, _, _ in decoded if rule_message(e.rule)), ""),
        query_params=first_params.base(),
        levels=[level for _, _, level in decoded],
        expression=expression,
        verified=verified,
        rule_group=first_entry.group,
        entries=[e for e, _, _ in decoded],
    )


def _resolve_expression(
    namespace: str,
    name: str,
    decoded: list[tuple[RuleEntry, QueryParams, AlertLevel]],
    registry: TemplateRegistry,
    verify: bool,
) -> tuple[str, bool]:
    """Pick the alert's base expression, preferring the templated one.

    The stored expression is trusted when it cannot be verified; operators
    may have edited it by hand.
    """
    lowest_entry, params, lowest = decoded[0]
    raw = lowest_entry.rule.expr
    fallback = strip_comparison(raw, lowest.compare_op, lowest.compare_value) or raw.strip()
    if not verify:
        return fallback, False

    try:
        promql = registry.build_expression(
            params.resource, params.rule_type, params.label_pairs, namespace
        )
    except UnknownTemplateError as exc:
        logger.warning(
            "expression_unverified",
            namespace=namespace,
            alert=name,
            reason=str(exc),
        )
        return fallback, False

    for entry, _, level in decoded:
        expected = build_rule_expression(promql, level.compare_op, level.compare_value)
        if not expressions_equal(expected, entry.rule.expr):
            logger.warning(
                "expression_unverified",
                namespace=namespace,
                alert=name,
                severity=level.severity.value,
                expected=expected,
                actual=entry.rule.expr,
            )
            return fallback, False
    return promql, True


def aggregate_levels(
    entries: Iterable[RuleEntry],
    registry: TemplateRegistry,
    verify: bool = True,
) -> tuple[list[LevelGroup], list[GroupError]]:
    """Aggregate every alert in a snapshot; failures are collected per alert."""
    groups: list[LevelGroup] = []
    errors: list[GroupError] = []
    for (namespace, name), bucket in group_entries(entries).items():
        try:
            groups.append(build_level_group(namespace, name, bucket, registry, verify))
        except AlertCompilerError as exc:
            logger.warning(
                "alert_group_failed",
                namespace=namespace,
                alert=name,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            errors.append(GroupError(namespace=namespace, name=name, error=exc))
    return groups, errors
