"""Expression template engine — builds PromQL from structured query params.

Only the closed registry of templates configured in settings is known; any
other expression is treated as opaque.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from alertcompiler.core.config import RuleTemplateConfig, Settings, get_settings
from alertcompiler.core.exceptions import UnknownTemplateError
from alertcompiler.core.types import CompareOp


# String literals stay whole; everything else splits on whitespace.
_TOKEN = re.compile(
    r'"(?:[^"\\]|\\.)*"'
    r"|'(?:[^'\\]|\\.)*'"
    r"|`[^`]*`"
    r"""|[^\s"'`]+"""
    r"""|["'`]"""
)


def _quote(value: str) -> str:
    """Render *value* as a double-quoted PromQL string literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


def _selector(label_pairs: Mapping[str, str], namespace: str | None) -> str:
    parts: list[str] = []
    if namespace:
        parts.append(f"namespace={_quote(namespace)}")
    for key in sorted(label_pairs):
        parts.append(f"{key}=~{_quote(label_pairs[key])}")
    return ", ".join(parts)


def build_rule_expression(promql: str, op: CompareOp | str, value: str) -> str:
    """Append the comparison of one alert level to a templated expression."""
    return f"{promql} {CompareOp(op).value} {value}"


def normalize_expression(expr: str) -> str:
    """Drop whitespace outside string literals so formatting differences compare equal."""
    return "".join(_TOKEN.findall(expr))


def expressions_equal(a: str, b: str) -> bool:
    return normalize_expression(a) == normalize_expression(b)


def strip_comparison(expr: str, op: CompareOp | str, value: str) -> str | None:
    """Return *expr* without its trailing ``<op> <value>``, or None if absent."""
    suffix = normalize_expression(f"{CompareOp(op).value}{value}")
    compact = expr.rstrip()
    # Walk back over the raw string so the returned prefix keeps its formatting.
    for cut in range(len(compact) - 1, -1, -1):
        tail = normalize_expression(compact[cut:])
        if tail == suffix:
            return compact[:cut].rstrip()
        if len(tail) > len(suffix):
            break
    return None


class TemplateRegistry:
    """Closed registry of PromQL templates keyed by resource and rule type."""

    def __init__(
        self,
        templates: Mapping[str, Mapping[str, RuleTemplateConfig]],
        global_namespace: str,
    ) -> None:
        self._templates = {r: dict(rules) for r, rules in templates.items()}
        self._global_namespace = global_namespace

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> TemplateRegistry:
        settings = settings or get_settings()
        return cls(settings.templates, settings.compiler.global_namespace)

    @property
    def resources(self) -> list[str]:
        return sorted(self._templates)

    def rule_types(self, resource: str) -> list[str]:
        return sorted(self._templates.get(resource, {}))

    def get(self, resource: str, rule_type: str) -> RuleTemplateConfig:
        rules = self._templates.get(resource)
        if rules is None:
            raise UnknownTemplateError(f"unknown resource {resource!r}")
        template = rules.get(rule_type)
        if template is None:
            raise UnknownTemplateError(
                f"unknown rule type {rule_type!r} for resource {resource!r}"
            )
        return template

    def build_expression(
        self,
        resource: str,
        rule_type: str,
        label_pairs: Mapping[str, str],
        namespace: str | None = None,
    ) -> str:
        """Render the template for *resource*/*rule_type* over *label_pairs*.

        Namespaced templates get a leading ``namespace`` matcher when the alert
        lives outside the global alert namespace.

        Raises:
            UnknownTemplateError: no template registered.
        """
        template = self.get(resource, rule_type)
        scope = None
        if template.namespaced and namespace and namespace != self._global_namespace:
            scope = namespace
        return template.expr.replace("%s", _selector(label_pairs, scope), 1)
