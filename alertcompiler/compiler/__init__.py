"""Forward / reverse alert compilation and write-back."""

from alertcompiler.compiler.forward import CompileResult, RawAlertResource
from alertcompiler.compiler.reverse import (
    NativeAlert,
    remove_route,
    remove_rule_group,
    to_native,
    upsert_route,
    upsert_rule_group,
)
from alertcompiler.compiler.writer import (
    AlertResourceStore,
    AlertRuleWriter,
    check_resource_version,
)

__all__ = [
    "AlertResourceStore",
    "AlertRuleWriter",
    "CompileResult",
    "NativeAlert",
    "RawAlertResource",
    "check_resource_version",
    "remove_route",
    "remove_rule_group",
    "to_native",
    "upsert_route",
    "upsert_rule_group",
]
