"""Tests for AlertRuleWriter — fetch, compile, versioned write-back."""

from __future__ import annotations

import pytest

from alertcompiler.core.config import Settings
from alertcompiler.core.exceptions import ConflictError, RouteResolutionError
from alertcompiler.core.types import (
    AlertLevel,
    AlertReceiver,
    AlertRule,
    BaseQueryParams,
    Severity,
)
from alertcompiler.compiler.forward import RawAlertResource
from alertcompiler.compiler.writer import AlertRuleWriter, check_resource_version
from alertcompiler.native.types import (
    AlertmanagerConfig,
    AlertmanagerConfigSpec,
    ObjectMeta,
    PrometheusRule,
    Receiver,
    Route,
)

NS = "gemcloud-monitoring-system"


class FakeStore:
    """In-memory store that bumps resource versions on every write."""

    def __init__(self) -> None:
        self.prometheus_rule = PrometheusRule(
            metadata=ObjectMeta(name="myrule", namespace=NS, resource_version="1"),
        )
        self.am_config = AlertmanagerConfig(
            metadata=ObjectMeta(name="myconfig", namespace=NS, resource_version="1"),
            spec=AlertmanagerConfigSpec(
                receivers=[Receiver(name="null"), Receiver(name="receiver-1")],
                route=Route(receiver="null"),
            ),
        )
        self.writes: list[str] = []
        # Simulates another writer landing between our read and our write.
        self.race_on_rule = False
        self.race_on_config = False

    def get_prometheus_rule(self, namespace: str) -> PrometheusRule:
        return self.prometheus_rule.model_copy(deep=True)

    def get_alertmanager_config(self, namespace: str) -> AlertmanagerConfig:
        return self.am_config.model_copy(deep=True)

    def update_prometheus_rule(self, rule: PrometheusRule, expected_version: str) -> PrometheusRule:
        if self.race_on_rule:
            self.prometheus_rule.metadata.resource_version = "99"
        current = self.prometheus_rule.metadata.resource_version
        check_resource_version("PrometheusRule", rule.metadata.name, expected_version, current)
        rule.metadata.resource_version = str(int(current) + 1)
        self.prometheus_rule = rule
        self.writes.append("PrometheusRule")
        return rule

    def update_alertmanager_config(
        self, config: AlertmanagerConfig, expected_version: str
    ) -> AlertmanagerConfig:
        if self.race_on_config:
            self.am_config.metadata.resource_version = "99"
        current = self.am_config.metadata.resource_version
        check_resource_version("AlertmanagerConfig", config.metadata.name, expected_version, current)
        config.metadata.resource_version = str(int(current) + 1)
        self.am_config = config
        self.writes.append("AlertmanagerConfig")
        return config


def _alert(name: str = "alert-1", receiver: str = "receiver-1") -> AlertRule:
    return AlertRule(
        namespace=NS,
        name=name,
        for_="1m",
        alert_levels=[
            AlertLevel(compare_op="==", compare_value="0", severity=Severity.ERROR),
        ],
        receivers=[AlertReceiver(name=receiver)],
        is_open=True,
        query_params=BaseQueryParams(
            resource="node",
            rule_type="statusCondition",
            label_pairs={"condition": "Ready", "status": "true"},
        ),
        expression='kube_node_status_condition{condition=~"Ready", status=~"true"}',
    )


def _compiled(store: FakeStore) -> list[AlertRule]:
    raw = RawAlertResource(store.prometheus_rule, store.am_config, settings=Settings())
    return raw.to_alerts(False).raise_for_errors()


class TestCheckResourceVersion:
    def test_same_version_passes(self) -> None:
        check_resource_version("PrometheusRule", "myrule", "3", "3")

    def test_mismatch_raises(self) -> None:
        with pytest.raises(ConflictError) as exc_info:
            check_resource_version("PrometheusRule", "myrule", "3", "4")
        err = exc_info.value
        assert (err.kind, err.name, err.expected, err.current) == ("PrometheusRule", "myrule", "3", "4")
        assert "modified concurrently" in str(err)


class TestSave:
    def test_save_then_read_back(self) -> None:
        store = FakeStore()
        writer = AlertRuleWriter(store, settings=Settings())
        native = writer.save(_alert())

        assert native.route.receiver == "receiver-1"
        assert store.writes == ["PrometheusRule", "AlertmanagerConfig"]
        assert store.prometheus_rule.metadata.resource_version == "2"
        assert store.am_config.metadata.resource_version == "2"
        assert _compiled(store) == [_alert()]

    def test_save_twice_replaces(self) -> None:
        store = FakeStore()
        writer = AlertRuleWriter(store, settings=Settings())
        writer.save(_alert())
        disabled = _alert().model_copy(update={"is_open": False, "receivers": []})
        writer.save(disabled)

        assert len(store.prometheus_rule.spec.groups) == 1
        assert [a.is_open for a in _compiled(store)] == [False]

    def test_conflict_propagates(self) -> None:
        store = FakeStore()
        store.race_on_rule = True
        writer = AlertRuleWriter(store, settings=Settings())
        with pytest.raises(ConflictError):
            writer.save(_alert())
        assert store.writes == []

    def test_conflict_on_config_leaves_rule_written(self) -> None:
        store = FakeStore()
        store.race_on_config = True
        writer = AlertRuleWriter(store, settings=Settings())
        with pytest.raises(ConflictError) as exc_info:
            writer.save(_alert())
        assert exc_info.value.kind == "AlertmanagerConfig"
        assert store.writes == ["PrometheusRule"]
        assert [a.is_open for a in _compiled(store)] == [False]

        store.race_on_config = False
        writer.save(_alert())
        assert len(store.prometheus_rule.spec.groups) == 1
        assert _compiled(store) == [_alert()]

    def test_routing_error_writes_nothing(self) -> None:
        store = FakeStore()
        writer = AlertRuleWriter(store, settings=Settings())
        with pytest.raises(RouteResolutionError):
            writer.save(_alert(receiver="pager"))
        assert store.writes == []
        assert store.prometheus_rule.spec.groups == []


class TestDelete:
    def test_delete_removes_alert(self) -> None:
        store = FakeStore()
        writer = AlertRuleWriter(store, settings=Settings())
        writer.save(_alert("alert-1"))
        writer.save(_alert("alert-2"))
        writer.delete(NS, "alert-1")

        assert [a.name for a in _compiled(store)] == ["alert-2"]
        assert store.am_config.spec.route is not None
        assert len(store.am_config.spec.route.routes) == 1

    def test_delete_unknown_alert_still_writes(self) -> None:
        store = FakeStore()
        AlertRuleWriter(store, settings=Settings()).delete(NS, "ghost")
        assert store.writes == ["PrometheusRule", "AlertmanagerConfig"]
