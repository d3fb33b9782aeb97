"""Reverse compiler — domain AlertRule to native rule group and route.

Every helper here returns new objects; inputs are never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from alertcompiler.core.config import Settings, get_settings
from alertcompiler.core.exceptions import (
    AmbiguousSeverityError,
    DecodeError,
    RouteResolutionError,
)
from alertcompiler.core.types import AlertRule, QueryParams
from alertcompiler.native.labels import (
    ALERT_NAME_LABEL,
    ALERT_NAMESPACE_LABEL,
    EXPR_JSON_ANNOTATION,
    MESSAGE_ANNOTATION,
    NULL_RECEIVER_NAME,
    SEVERITY_LABEL,
    identity_labels,
)
from alertcompiler.native.types import (
    AlertmanagerConfig,
    InhibitRule,
    Matcher,
    PrometheusRule,
    Receiver,
    Route,
    Rule,
    RuleGroup,
)
from alertcompiler.routing.tree import DISABLED, ResolvedReceiver
from alertcompiler.rules.codec import encode_query_params
from alertcompiler.rules.templates import TemplateRegistry, build_rule_expression


@dataclass
class NativeAlert:
    """Desired native state for one alert."""

    namespace: str
    name: str
    group: RuleGroup
    route: Route
    inhibit_rules: list[InhibitRule] = field(default_factory=list)


def _identity_matchers(namespace: str, name: str) -> list[Matcher]:
    return [Matcher(name=k, value=v) for k, v in identity_labels(namespace, name).items()]


def _chosen_receiver(alert: AlertRule) -> ResolvedReceiver:
    if not alert.is_open:
        return DISABLED
    if len(alert.receivers) != 1:
        raise RouteResolutionError(
            f"open alert {alert.name!r} needs exactly one receiver, got {len(alert.receivers)}"
        )
    receiver = ResolvedReceiver.from_name(alert.receivers[0].name)
    if receiver.is_disabled:
        raise RouteResolutionError(
            f"open alert {alert.name!r} cannot route to the {NULL_RECEIVER_NAME!r} receiver"
        )
    return receiver


def to_native(
    alert: AlertRule,
    registry: TemplateRegistry | None = None,
    settings: Settings | None = None,
) -> NativeAlert:
    """Compile *alert* into its rule group, route and inhibit rules.

    Raises:
        DecodeError: the alert has no levels.
        AmbiguousSeverityError: two levels share a severity.
        UnknownTemplateError: no template for the alert's resource/rule type.
        RouteResolutionError: receivers inconsistent with ``is_open``.
    """
    settings = settings or get_settings()
    registry = registry or TemplateRegistry.from_settings(settings)
    cfg = settings.compiler

    if not alert.alert_levels:
        raise DecodeError(f"alert {alert.name!r} has no alert levels")
    severities = alert.severities
    if len(set(severities)) != len(severities):
        raise AmbiguousSeverityError(f"alert {alert.name!r} repeats a severity")

    levels = sorted(alert.alert_levels, key=lambda lvl: lvl.severity.rank)
    qp = alert.query_params
    promql = registry.build_expression(qp.resource, qp.rule_type, qp.label_pairs, alert.namespace)

    rules: list[Rule] = []
    for level in levels:
        payload = QueryParams(
            resource=qp.resource,
            rule_type=qp.rule_type,
            unit=qp.unit,
            label_pairs=dict(qp.label_pairs),
            compare_op=level.compare_op,
            compare_value=level.compare_value,
        )
        annotations = {EXPR_JSON_ANNOTATION: encode_query_params(payload)}
        if alert.message:
            annotations[MESSAGE_ANNOTATION] = alert.message
        rules.append(
            Rule(
                alert=alert.name,
                expr=build_rule_expression(promql, level.compare_op, level.compare_value),
                for_=alert.for_,
                labels={
                    **identity_labels(alert.namespace, alert.name),
                    SEVERITY_LABEL: level.severity.value,
                },
                annotations=annotations,
            )
        )

    route = Route(
        receiver=_chosen_receiver(alert).wire_name,
        matchers=_identity_matchers(alert.namespace, alert.name),
        group_by=[ALERT_NAMESPACE_LABEL, ALERT_NAME_LABEL],
        group_wait=cfg.route_group_wait,
        group_interval=cfg.route_group_interval,
        repeat_interval=cfg.route_repeat_interval,
    )

    inhibit_rules: list[InhibitRule] = []
    if cfg.emit_inhibit_rules:
        for lower, higher in zip(levels, levels[1:]):
            inhibit_rules.append(
                InhibitRule(
                    source_match=[
                        *_identity_matchers(alert.namespace, alert.name),
                        Matcher(name=SEVERITY_LABEL, value=higher.severity.value),
                    ],
                    target_match=[
                        *_identity_matchers(alert.namespace, alert.name),
                        Matcher(name=SEVERITY_LABEL, value=lower.severity.value),
                    ],
                    equal=[ALERT_NAMESPACE_LABEL, ALERT_NAME_LABEL],
                )
            )

    return NativeAlert(
        namespace=alert.namespace,
        name=alert.name,
        group=RuleGroup(name=alert.name, rules=rules),
        route=route,
        inhibit_rules=inhibit_rules,
    )


# ── Upsert / removal against fetched objects ────────────────────


def _rule_key(rule: Rule, default_namespace: str) -> tuple[str, str]:
    namespace = rule.labels.get(ALERT_NAMESPACE_LABEL) or default_namespace
    return namespace, rule.labels.get(ALERT_NAME_LABEL) or rule.alert


def _split_group(
    group: RuleGroup, key: tuple[str, str], default_namespace: str
) -> tuple[list[Rule], int | None]:
    """Return the rules of *group* not belonging to *key* and where the first removed one sat.

    An empty group named after the alert counts as the alert's own placeholder.
    """
    if not group.rules:
        return [], 0 if group.name == key[1] else None
    kept: list[Rule] = []
    first: int | None = None
    for rule in group.rules:
        if _rule_key(rule, default_namespace) == key:
            if first is None:
                first = len(kept)
            continue
        kept.append(rule)
    return kept, first


def _route_identity(route: Route) -> tuple[str, str] | None:
    values = {m.name: m.value for m in route.matchers}
    if ALERT_NAME_LABEL in values and ALERT_NAMESPACE_LABEL in values:
        return values[ALERT_NAMESPACE_LABEL], values[ALERT_NAME_LABEL]
    return None


def _inhibit_identity(rule: InhibitRule) -> tuple[str, str] | None:
    return _route_identity(Route(matchers=rule.target_match))


def upsert_rule_group(prometheus_rule: PrometheusRule, native: NativeAlert) -> PrometheusRule:
    """Return a copy of *prometheus_rule* holding the alert's rules exactly once.

    A group that held only this alert's rules is replaced by the new group,
    at the position of the first such group. Groups shared with other alerts
    keep their other rules; when the alert has no group of its own, its new
    rules go where its old rules sat in the first shared group. Otherwise the
    new group is appended.
    """
    updated = prometheus_rule.model_copy(deep=True)
    key = (native.namespace, native.name)
    default_ns = updated.metadata.namespace
    groups: list[RuleGroup] = []
    owned = False
    shared: tuple[RuleGroup, int] | None = None
    for group in updated.spec.groups:
        kept, first = _split_group(group, key, default_ns)
        if first is None:
            groups.append(group)
            continue
        if not kept:
            if not owned:
                groups.append(native.group.model_copy(deep=True))
                owned = True
            continue
        group.rules = kept
        if shared is None:
            shared = (group, first)
        groups.append(group)

    if not owned:
        new_rules = [r.model_copy(deep=True) for r in native.group.rules]
        same_name = next((g for g in groups if g.name == native.group.name), None)
        if shared is not None:
            group, at = shared
            group.rules[at:at] = new_rules
        elif same_name is not None:
            same_name.rules.extend(new_rules)
        else:
            groups.append(native.group.model_copy(deep=True))
    updated.spec.groups = groups
    return updated


def remove_rule_group(prometheus_rule: PrometheusRule, namespace: str, name: str) -> PrometheusRule:
    """Return a copy without the alert's rules; groups left empty are dropped."""
    updated = prometheus_rule.model_copy(deep=True)
    key = (namespace, name)
    default_ns = updated.metadata.namespace
    groups: list[RuleGroup] = []
    for group in updated.spec.groups:
        kept, first = _split_group(group, key, default_ns)
        if first is None:
            groups.append(group)
        elif kept:
            group.rules = kept
            groups.append(group)
    updated.spec.groups = groups
    return updated


def _declared_receivers(config: AlertmanagerConfig) -> set[str]:
    return {r.name for r in config.spec.receivers}


def upsert_route(config: AlertmanagerConfig, native: NativeAlert) -> AlertmanagerConfig:
    """Return a copy of *config* routing the alert as *native* describes.

    Replaces the existing route and inhibit rules for the alert identity, and
    declares the null receiver when the alert is disabled.

    Raises:
        RouteResolutionError: an open alert references an undeclared receiver.
    """
    updated = config.model_copy(deep=True)
    key = (native.namespace, native.name)
    receiver = native.route.receiver

    if receiver == NULL_RECEIVER_NAME:
        if NULL_RECEIVER_NAME not in _declared_receivers(updated):
            updated.spec.receivers.append(Receiver(name=NULL_RECEIVER_NAME))
    elif receiver not in _declared_receivers(updated):
        raise RouteResolutionError(
            f"receiver {receiver!r} is not declared in {updated.metadata.name!r}"
        )

    if updated.spec.route is None:
        updated.spec.route = Route(receiver=NULL_RECEIVER_NAME)
        if NULL_RECEIVER_NAME not in _declared_receivers(updated):
            updated.spec.receivers.append(Receiver(name=NULL_RECEIVER_NAME))

    routes: list[Route] = []
    placed = False
    for route in updated.spec.route.routes:
        if _route_identity(route) == key:
            if not placed:
                routes.append(native.route.model_copy(deep=True))
                placed = True
            continue
        routes.append(route)
    if not placed:
        routes.append(native.route.model_copy(deep=True))
    updated.spec.route.routes = routes

    updated.spec.inhibit_rules = [
        r for r in updated.spec.inhibit_rules if _inhibit_identity(r) != key
    ] + [r.model_copy(deep=True) for r in native.inhibit_rules]
    return updated


def remove_route(config: AlertmanagerConfig, namespace: str, name: str) -> AlertmanagerConfig:
    updated = config.model_copy(deep=True)
    key = (namespace, name)
    if updated.spec.route is not None:
        updated.spec.route.routes = [
            r for r in updated.spec.route.routes if _route_identity(r) != key
        ]
    updated.spec.inhibit_rules = [
        r for r in updated.spec.inhibit_rules if _inhibit_identity(r) != key
    ]
    return updated
