"""Core module — config, logging, domain types, exceptions."""

from alertcompiler.core.config import Settings, get_settings, load_settings, reset_settings
from alertcompiler.core.exceptions import (
    AggregateCompileError,
    AlertCompilerError,
    AmbiguousSeverityError,
    ConflictError,
    DecodeError,
    GroupError,
    InconsistentQueryError,
    RouteResolutionError,
    UnknownTemplateError,
)
from alertcompiler.core.logging import setup_logging
from alertcompiler.core.types import (
    AlertLevel,
    AlertReceiver,
    AlertRule,
    BaseQueryParams,
    CompareOp,
    OriginRefs,
    QueryParams,
    Severity,
)

__all__ = [
    "AggregateCompileError",
    "AlertCompilerError",
    "AlertLevel",
    "AlertReceiver",
    "AlertRule",
    "AmbiguousSeverityError",
    "BaseQueryParams",
    "CompareOp",
    "ConflictError",
    "DecodeError",
    "GroupError",
    "InconsistentQueryError",
    "OriginRefs",
    "QueryParams",
    "RouteResolutionError",
    "Settings",
    "Severity",
    "UnknownTemplateError",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
]
