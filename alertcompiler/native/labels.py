"""Wire constants and typed accessors for native rule labels / annotations."""

from __future__ import annotations

from alertcompiler.core.exceptions import DecodeError
from alertcompiler.core.types import Severity
from alertcompiler.native.types import Rule

ALERT_NAME_LABEL = "gems_alertname"
ALERT_NAMESPACE_LABEL = "gems_namespace"
SEVERITY_LABEL = "severity"

EXPR_JSON_ANNOTATION = "gems_expr_json"
MESSAGE_ANNOTATION = "message"

# Receiver name meaning "do not notify"; routing to it disables the alert.
NULL_RECEIVER_NAME = "null"

GLOBAL_ALERT_NAMESPACE = "gemcloud-monitoring-system"


def identity_labels(namespace: str, name: str) -> dict[str, str]:
    """Synthetic label set identifying one alert for routing and silencing."""
    return {ALERT_NAME_LABEL: name, ALERT_NAMESPACE_LABEL: namespace}


def _require(mapping: dict[str, str], key: str, what: str, rule: Rule) -> str:
    value = mapping.get(key, "")
    if not value:
        raise DecodeError(f"rule {rule.alert!r} is missing {what} {key!r}")
    return value


def rule_alert_name(rule: Rule) -> str:
    return _require(rule.labels, ALERT_NAME_LABEL, "label", rule)


def rule_namespace(rule: Rule) -> str:
    return _require(rule.labels, ALERT_NAMESPACE_LABEL, "label", rule)


def rule_severity(rule: Rule) -> Severity:
    raw = _require(rule.labels, SEVERITY_LABEL, "label", rule)
    try:
        return Severity(raw)
    except ValueError as exc:
        raise DecodeError(f"rule {rule.alert!r} has unknown severity {raw!r}") from exc


def rule_query_payload(rule: Rule) -> str:
    return _require(rule.annotations, EXPR_JSON_ANNOTATION, "annotation", rule)


def rule_message(rule: Rule) -> str:
    return rule.annotations.get(MESSAGE_ANNOTATION, "")
