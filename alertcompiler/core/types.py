"""Domain types for normalized alert rules."""

from __future__ import annotations

import re
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from alertcompiler.native.types import Route, RuleGroup, Silence

# Prometheus duration, e.g. "30s", "1m", "1h30m". Empty means "fire immediately".
_DURATION_PATTERN = re.compile(r"^((\d+)(ms|s|m|h|d|w|y))*$")


def is_valid_duration(value: str) -> bool:
    return _DURATION_PATTERN.match(value) is not None


class Severity(StrEnum):
    """Alert severity as carried by the ``severity`` label."""

    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK: dict[Severity, int] = {
    Severity.WARNING: 0,
    Severity.ERROR: 1,
    Severity.CRITICAL: 2,
}


class CompareOp(StrEnum):
    EQ = "=="
    NE = "!="
    GT = ">"
    GE = ">="
    LT = "<"
    LE = "<="


class BaseQueryParams(BaseModel):
    """Query parameters shared by every level of one alert."""

    model_config = ConfigDict(populate_by_name=True)

    resource: str
    rule_type: str = Field(alias="rule")
    unit: str = ""
    label_pairs: dict[str, str] = Field(default_factory=dict, alias="labelpairs")

    @field_validator("label_pairs", mode="before")
    @classmethod
    def _null_label_pairs(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("resource", "rule_type")
    @classmethod
    def _not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v


class QueryParams(BaseQueryParams):
    """The structured payload stored on a single native rule entry."""

    compare_op: CompareOp = Field(alias="compareOp")
    compare_value: str = Field(alias="compareValue")

    @field_validator("compare_value", mode="before")
    @classmethod
    def _stringify_value(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise ValueError("must be a string or number")
        if isinstance(v, (int, float)):
            return str(v)
        return v

    def base(self) -> BaseQueryParams:
        return BaseQueryParams(
            resource=self.resource,
            rule_type=self.rule_type,
            unit=self.unit,
            label_pairs=dict(self.label_pairs),
        )


class AlertLevel(BaseModel):
    """One severity threshold of an alert."""

    model_config = ConfigDict(populate_by_name=True)

    compare_op: CompareOp = Field(alias="compareOp")
    compare_value: str = Field(alias="compareValue")
    severity: Severity


class AlertReceiver(BaseModel):
    name: str


class OriginRefs(BaseModel):
    """Handles to the native objects an alert was compiled from."""

    rule_group: RuleGroup | None = None
    route: Route | None = None
    silence: Silence | None = None


class AlertRule(BaseModel):
    """A normalized alert rule, recomputed from native objects on every read.

    ``origin`` never takes part in serialization; callers comparing alerts by
    content should compile with origin output disabled or use
    :meth:`content`.
    """

    model_config = ConfigDict(populate_by_name=True)

    namespace: str
    name: str
    for_: str = Field(default="", alias="for")
    message: str = ""
    alert_levels: list[AlertLevel] = Field(default_factory=list, alias="alertLevels")
    receivers: list[AlertReceiver] = Field(default_factory=list)
    is_open: bool = Field(default=False, alias="isOpen")
    mute: bool = False
    query_params: BaseQueryParams = Field(alias="queryParams")
    expression: str = Field(default="", alias="promql")
    origin: OriginRefs | None = Field(default=None, exclude=True)

    @field_validator("for_")
    @classmethod
    def _valid_duration(cls, v: str) -> str:
        if not is_valid_duration(v):
            raise ValueError(f"invalid duration {v!r}")
        return v

    @property
    def severities(self) -> list[Severity]:
        return [level.severity for level in self.alert_levels]

    def content(self) -> dict[str, Any]:
        """Logical content of the alert without origin handles."""
        return self.model_dump()
