"""Native alerting objects as read from and written to the cluster."""

from alertcompiler.native.types import (
    AlertmanagerConfig,
    InhibitRule,
    Matcher,
    MatchType,
    ObjectMeta,
    PrometheusRule,
    Receiver,
    Route,
    Rule,
    RuleGroup,
    Silence,
    SilenceMatcher,
    SilenceState,
)

__all__ = [
    "AlertmanagerConfig",
    "InhibitRule",
    "MatchType",
    "Matcher",
    "ObjectMeta",
    "PrometheusRule",
    "Receiver",
    "Route",
    "Rule",
    "RuleGroup",
    "Silence",
    "SilenceMatcher",
    "SilenceState",
]
