"""Tests for native wire models and the typed label / annotation accessors."""

from __future__ import annotations

import pytest

from alertcompiler.core.exceptions import DecodeError
from alertcompiler.core.types import Severity
from alertcompiler.native.labels import (
    ALERT_NAME_LABEL,
    ALERT_NAMESPACE_LABEL,
    EXPR_JSON_ANNOTATION,
    SEVERITY_LABEL,
    identity_labels,
    rule_alert_name,
    rule_message,
    rule_namespace,
    rule_query_payload,
    rule_severity,
)
from alertcompiler.native.types import (
    AlertmanagerConfig,
    Matcher,
    MatchType,
    PrometheusRule,
    Rule,
    Silence,
    SilenceState,
)


def _rule(labels: dict[str, str] | None = None, annotations: dict[str, str] | None = None) -> Rule:
    return Rule(
        alert="alert-1",
        expr="up == 0",
        labels=labels
        if labels is not None
        else {
            ALERT_NAME_LABEL: "alert-1",
            ALERT_NAMESPACE_LABEL: "default",
            SEVERITY_LABEL: "error",
        },
        annotations=annotations if annotations is not None else {EXPR_JSON_ANNOTATION: "{}"},
    )


class TestAccessors:
    def test_identity_labels(self) -> None:
        assert identity_labels("ns", "a") == {"gems_alertname": "a", "gems_namespace": "ns"}

    def test_required_labels(self) -> None:
        rule = _rule()
        assert rule_alert_name(rule) == "alert-1"
        assert rule_namespace(rule) == "default"
        assert rule_severity(rule) is Severity.ERROR
        assert rule_query_payload(rule) == "{}"

    def test_missing_alert_name_label(self) -> None:
        rule = _rule(labels={ALERT_NAMESPACE_LABEL: "default", SEVERITY_LABEL: "error"})
        with pytest.raises(DecodeError, match="gems_alertname"):
            rule_alert_name(rule)

    def test_empty_label_counts_as_missing(self) -> None:
        rule = _rule(labels={ALERT_NAME_LABEL: "alert-1", ALERT_NAMESPACE_LABEL: ""})
        with pytest.raises(DecodeError, match="gems_namespace"):
            rule_namespace(rule)

    def test_unknown_severity(self) -> None:
        rule = _rule(labels={SEVERITY_LABEL: "page-me"})
        with pytest.raises(DecodeError, match="page-me"):
            rule_severity(rule)

    def test_missing_payload_annotation(self) -> None:
        with pytest.raises(DecodeError, match="gems_expr_json"):
            rule_query_payload(_rule(annotations={}))

    def test_message_optional(self) -> None:
        assert rule_message(_rule()) == ""
        assert rule_message(_rule(annotations={"message": "node down"})) == "node down"


class TestWireFormat:
    def test_prometheus_rule_aliases(self) -> None:
        pr = PrometheusRule.model_validate(
            {
                "metadata": {"name": "myrule", "namespace": "ns", "resourceVersion": "42"},
                "spec": {
                    "groups": [
                        {"name": "g", "rules": [{"alert": "a", "expr": "up", "for": "1m"}]}
                    ]
                },
            }
        )
        assert pr.metadata.resource_version == "42"
        assert pr.spec.groups[0].rules[0].for_ == "1m"
        dumped = pr.model_dump(by_alias=True)
        assert dumped["spec"]["groups"][0]["rules"][0]["for"] == "1m"

    def test_alertmanager_config_routes(self) -> None:
        cfg = AlertmanagerConfig.model_validate(
            {
                "spec": {
                    "route": {
                        "receiver": "null",
                        "routes": [
                            {
                                "receiver": "receiver-1",
                                "matchers": [
                                    {"name": "gems_alertname", "value": "alert-1"},
                                    {"name": "severity", "value": "crit.*", "matchType": "=~"},
                                ],
                            }
                        ],
                    },
                    "receivers": [
                        {"name": "null"},
                        {"name": "receiver-1", "webhookConfigs": [{"url": "http://hook"}]},
                    ],
                }
            }
        )
        assert cfg.spec.route is not None
        child = cfg.spec.route.routes[0]
        assert child.matchers[0].match_type is MatchType.EQUAL
        assert child.matchers[1].match_type is MatchType.REGEX
        dumped = cfg.spec.receivers[1].model_dump(by_alias=True)
        assert dumped["webhookConfigs"] == [{"url": "http://hook"}]

    def test_legacy_regex_flag(self) -> None:
        regex = Matcher.model_validate({"name": "pod", "value": "web-.*", "regex": True})
        assert regex.match_type is MatchType.REGEX
        plain = Matcher.model_validate({"name": "pod", "value": "web", "regex": False})
        assert plain.match_type is MatchType.EQUAL
        explicit = Matcher.model_validate({"name": "pod", "value": "web", "regex": True, "matchType": "!="})
        assert explicit.match_type is MatchType.NOT_EQUAL
        assert "regex" not in explicit.model_dump(by_alias=True)

    def test_silence_wire_format(self) -> None:
        silence = Silence.model_validate(
            {
                "id": "s1",
                "matchers": [{"name": "gems_alertname", "value": "alert-1", "isRegex": False}],
                "startsAt": "2024-01-01T00:00:00Z",
                "endsAt": "2024-01-02T00:00:00Z",
                "status": {"state": "expired"},
            }
        )
        assert silence.matchers[0].is_equal is True
        assert silence.status.state is SilenceState.EXPIRED
        assert silence.ends_at > silence.starts_at
