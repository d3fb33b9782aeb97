"""Native alerting objects — PrometheusRule, AlertmanagerConfig and silences.

Field names follow the camelCase wire format of the prometheus-operator CRDs
and the Alertmanager API; Python attribute names are snake_case.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _Native(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ObjectMeta(_Native):
    """Kubernetes object metadata; ``resource_version`` is the concurrency token."""

    name: str = ""
    namespace: str = ""
    resource_version: str = Field(default="", alias="resourceVersion")


# ── PrometheusRule ──────────────────────────────────────────────


class Rule(_Native):
    """One alerting rule entry inside a rule group."""

    alert: str = ""
    expr: str = ""
    for_: str = Field(default="", alias="for")
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)


class RuleGroup(_Native):
    name: str
    rules: list[Rule] = Field(default_factory=list)


class PrometheusRuleSpec(_Native):
    groups: list[RuleGroup] = Field(default_factory=list)


class PrometheusRule(_Native):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: PrometheusRuleSpec = Field(default_factory=PrometheusRuleSpec)


# ── AlertmanagerConfig ──────────────────────────────────────────


class MatchType(StrEnum):
    """Alertmanager label matcher operators."""

    EQUAL = "="
    NOT_EQUAL = "!="
    REGEX = "=~"
    NOT_REGEX = "!~"


class Matcher(_Native):
    name: str
    value: str = ""
    match_type: MatchType = Field(default=MatchType.EQUAL, alias="matchType")

    @model_validator(mode="before")
    @classmethod
    def legacy_regex_flag(cls, data: Any) -> Any:
        # v1alpha1 matchers carry a boolean "regex" instead of matchType.
        if isinstance(data, dict) and "regex" in data:
            data = dict(data)
            regex = data.pop("regex")
            if "matchType" not in data and "match_type" not in data:
                data["matchType"] = MatchType.REGEX if regex else MatchType.EQUAL
        return data


class Route(_Native):
    """A node of the notification routing tree."""

    receiver: str = ""
    matchers: list[Matcher] = Field(default_factory=list)
    routes: list[Route] = Field(default_factory=list)
    group_by: list[str] = Field(default_factory=list, alias="groupBy")
    group_wait: str = Field(default="", alias="groupWait")
    group_interval: str = Field(default="", alias="groupInterval")
    repeat_interval: str = Field(default="", alias="repeatInterval")
    continue_: bool = Field(default=False, alias="continue")


class Receiver(_Native):
    """A named notification destination; channel configs are kept verbatim."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str


class InhibitRule(_Native):
    source_match: list[Matcher] = Field(default_factory=list, alias="sourceMatch")
    target_match: list[Matcher] = Field(default_factory=list, alias="targetMatch")
    equal: list[str] = Field(default_factory=list)


class AlertmanagerConfigSpec(_Native):
    route: Route | None = None
    receivers: list[Receiver] = Field(default_factory=list)
    inhibit_rules: list[InhibitRule] = Field(default_factory=list, alias="inhibitRules")


class AlertmanagerConfig(_Native):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: AlertmanagerConfigSpec = Field(default_factory=AlertmanagerConfigSpec)


# ── Silences ────────────────────────────────────────────────────


class SilenceState(StrEnum):
    ACTIVE = "active"
    PENDING = "pending"
    EXPIRED = "expired"


class SilenceMatcher(_Native):
    name: str
    value: str = ""
    is_regex: bool = Field(default=False, alias="isRegex")
    is_equal: bool = Field(default=True, alias="isEqual")


class SilenceStatus(_Native):
    state: SilenceState = SilenceState.ACTIVE


class Silence(_Native):
    id: str = ""
    matchers: list[SilenceMatcher] = Field(default_factory=list)
    starts_at: datetime = Field(alias="startsAt")
    ends_at: datetime = Field(alias="endsAt")
    created_by: str = Field(default="", alias="createdBy")
    comment: str = ""
    status: SilenceStatus = Field(default_factory=SilenceStatus)
