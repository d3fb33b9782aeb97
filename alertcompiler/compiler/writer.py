"""Write-back of reverse-compiled alerts, guarded by resource versions.

The store is the cluster-facing collaborator. Updates carry the resource
version read with the snapshot; a mismatch surfaces as ConflictError and the
caller must start over from a fresh fetch. Nothing here retries.
"""

from __future__ import annotations

from typing import Protocol

import structlog

from alertcompiler.compiler.reverse import (
    NativeAlert,
    remove_route,
    remove_rule_group,
    to_native,
    upsert_route,
    upsert_rule_group,
)
from alertcompiler.core.config import Settings, get_settings
from alertcompiler.core.exceptions import ConflictError
from alertcompiler.core.types import AlertRule
from alertcompiler.native.types import AlertmanagerConfig, PrometheusRule
from alertcompiler.rules.templates import TemplateRegistry

logger = structlog.stdlib.get_logger()


class AlertResourceStore(Protocol):
    """Reads and writes the native alerting objects of one namespace."""

    def get_prometheus_rule(self, namespace: str) -> PrometheusRule: ...

    def get_alertmanager_config(self, namespace: str) -> AlertmanagerConfig: ...

    def update_prometheus_rule(self, rule: PrometheusRule, expected_version: str) -> PrometheusRule:
        """Persist *rule*; raise ConflictError if the stored version moved on."""
        ...

    def update_alertmanager_config(
        self, config: AlertmanagerConfig, expected_version: str
    ) -> AlertmanagerConfig:
        """Persist *config*; raise ConflictError if the stored version moved on."""
        ...


def check_resource_version(kind: str, name: str, expected: str, current: str) -> None:
    """Raise ConflictError unless *current* still equals the version read."""
    if expected != current:
        raise ConflictError(kind=kind, name=name, expected=expected, current=current)


class AlertRuleWriter:
    """Applies domain alerts to a store in one fetch → compile → write pass."""

    def __init__(
        self,
        store: AlertResourceStore,
        registry: TemplateRegistry | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._store = store
        self._settings = settings or get_settings()
        self._registry = registry or TemplateRegistry.from_settings(self._settings)

    def save(self, alert: AlertRule) -> NativeAlert:
        """Create or replace *alert* in the store.

        The PrometheusRule is written first. If the AlertmanagerConfig write then
        conflicts, the new rule group is already stored while the route is not;
        the alert compiles as disabled until the caller fetches again and
        repeats the save, which converges because both upserts replace rather
        than append.

        Raises:
            ConflictError: either object changed since it was fetched.
        """
        native = to_native(alert, self._registry, self._settings)
        prometheus_rule = self._store.get_prometheus_rule(alert.namespace)
        am_config = self._store.get_alertmanager_config(alert.namespace)

        # Compute both before writing either so a routing error leaves the store untouched.
        new_config = upsert_route(am_config, native)
        new_rule = upsert_rule_group(prometheus_rule, native)

        self._store.update_prometheus_rule(new_rule, prometheus_rule.metadata.resource_version)
        self._store.update_alertmanager_config(new_config, am_config.metadata.resource_version)
        logger.info(
            "alert_saved",
            namespace=alert.namespace,
            alert=alert.name,
            levels=len(native.group.rules),
            receiver=native.route.receiver,
        )
        return native

    def delete(self, namespace: str, name: str) -> None:
        """Remove the alert's rule group, route and inhibit rules."""
        prometheus_rule = self._store.get_prometheus_rule(namespace)
        am_config = self._store.get_alertmanager_config(namespace)

        self._store.update_prometheus_rule(
            remove_rule_group(prometheus_rule, namespace, name),
            prometheus_rule.metadata.resource_version,
        )
        self._store.update_alertmanager_config(
            remove_route(am_config, namespace, name),
            am_config.metadata.resource_version,
        )
        logger.info("alert_deleted", namespace=namespace, alert=name)
