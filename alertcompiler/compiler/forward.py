"""Forward compiler — native rules, routing tree and silences to AlertRules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog

from alertcompiler.core.config import Settings, get_settings
from alertcompiler.core.exceptions import (
    AggregateCompileError,
    AlertCompilerError,
    GroupError,
)
from alertcompiler.core.types import AlertReceiver, AlertRule, OriginRefs
from alertcompiler.native.labels import identity_labels
from alertcompiler.native.types import AlertmanagerConfig, PrometheusRule, Silence
from alertcompiler.routing.matcher import RouteMatcher
from alertcompiler.routing.silences import find_silence
from alertcompiler.rules.levels import LevelGroup, aggregate_levels, flatten_groups
from alertcompiler.rules.templates import TemplateRegistry

logger = structlog.stdlib.get_logger()


@dataclass
class CompileResult:
    """Alerts that compiled plus the aggregate error for those that did not."""

    alerts: list[AlertRule] = field(default_factory=list)
    error: AggregateCompileError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_errors(self) -> list[AlertRule]:
        if self.error is not None:
            raise self.error
        return self.alerts


class RawAlertResource:
    """One fetched snapshot of the native alerting objects of a namespace."""

    def __init__(
        self,
        prometheus_rule: PrometheusRule | None,
        alertmanager_config: AlertmanagerConfig | None,
        silences: list[Silence] | None = None,
        registry: TemplateRegistry | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self.prometheus_rule = prometheus_rule
        self.alertmanager_config = alertmanager_config
        self.silences = silences or []
        self._registry = registry or TemplateRegistry.from_settings(self._settings)

    def to_alerts(self, contain_origin: bool, now: datetime | None = None) -> CompileResult:
        """Compile the snapshot into domain alerts in rule-group order.

        Args:
            contain_origin: keep handles to the native objects on each alert.
            now: evaluation time for silences; defaults to the current time.
        """
        now = now or datetime.now(UTC)
        cfg = self._settings.compiler

        groups = self.prometheus_rule.spec.groups if self.prometheus_rule else []
        default_ns = self.prometheus_rule.metadata.namespace if self.prometheus_rule else ""
        levels, errors = aggregate_levels(
            flatten_groups(groups, default_ns), self._registry, cfg.verify_expressions
        )

        root = self.alertmanager_config.spec.route if self.alertmanager_config else None
        matcher = RouteMatcher(root, cfg.max_route_depth)

        alerts: list[AlertRule] = []
        for group in levels:
            try:
                alerts.append(self._compile_one(group, matcher, contain_origin, now))
            except AlertCompilerError as exc:
                logger.warning(
                    "alert_group_failed",
                    namespace=group.namespace,
                    alert=group.name,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                errors.append(GroupError(namespace=group.namespace, name=group.name, error=exc))

        logger.debug("alerts_compiled", alerts=len(alerts), failed=len(errors))
        return CompileResult(
            alerts=alerts,
            error=AggregateCompileError(errors) if errors else None,
        )

    def _compile_one(
        self,
        group: LevelGroup,
        matcher: RouteMatcher,
        contain_origin: bool,
        now: datetime,
    ) -> AlertRule:
        labels = identity_labels(group.namespace, group.name)
        match = matcher.resolve(labels)
        silence = find_silence(self.silences, labels, now)

        is_open = not match.receiver.is_disabled
        origin = None
        if contain_origin:
            origin = OriginRefs(rule_group=group.rule_group, route=match.route, silence=silence)

        return AlertRule(
            namespace=group.namespace,
            name=group.name,
            for_=group.for_,
            message=group.message,
            alert_levels=group.levels,
            receivers=[AlertReceiver(name=match.receiver.name)] if is_open else [],
            is_open=is_open,
            mute=silence is not None,
            query_params=group.query_params,
            expression=group.expression,
            origin=origin,
        )
