"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")


class CompilerConfig(BaseModel):
    """Alert compiler behaviour."""

    global_namespace: str = "gemcloud-monitoring-system"
    max_route_depth: int = 16
    verify_expressions: bool = True
    emit_inhibit_rules: bool = True
    route_group_wait: str = "30s"
    route_group_interval: str = "30s"
    route_repeat_interval: str = "10m"


class RuleTemplateConfig(BaseModel):
    """One PromQL template; ``expr`` holds a ``%s`` selector placeholder."""

    expr: str
    units: list[str] = []
    labels: list[str] = []
    namespaced: bool = False


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"


def _default_templates() -> dict[str, dict[str, RuleTemplateConfig]]:
    return {
        "node": {
            "statusCondition": RuleTemplateConfig(
                expr="kube_node_status_condition{%s}",
                labels=["node", "condition", "status"],
            ),
            "cpuUsagePercent": RuleTemplateConfig(
                expr="gems_node_cpu_usage_percent{%s}",
                units=["percent"],
                labels=["node"],
            ),
            "memoryUsagePercent": RuleTemplateConfig(
                expr="gems_node_memory_usage_percent{%s}",
                units=["percent"],
                labels=["node"],
            ),
            "load1": RuleTemplateConfig(
                expr="gems_node_load1{%s}",
                labels=["node"],
            ),
        },
        "pod": {
            "cpuUsageCore": RuleTemplateConfig(
                expr="gems_pod_cpu_usage_cores{%s}",
                units=["core", "mcore"],
                labels=["pod"],
                namespaced=True,
            ),
            "memoryUsageBytes": RuleTemplateConfig(
                expr="gems_pod_memory_usage_bytes{%s}",
                units=["bytes-B", "bytes-KB", "bytes-MB", "bytes-GB"],
                labels=["pod"],
                namespaced=True,
            ),
            "restartTimesLast5m": RuleTemplateConfig(
                expr="increase(kube_pod_container_status_restarts_total{%s}[5m])",
                labels=["pod", "container"],
                namespaced=True,
            ),
        },
        "container": {
            "cpuUsagePercent": RuleTemplateConfig(
                expr="gems_container_cpu_usage_percent{%s}",
                units=["percent"],
                labels=["pod", "container"],
                namespaced=True,
            ),
        },
        "pvc": {
            "volumeUsagePercent": RuleTemplateConfig(
                expr="gems_pvc_usage_percent{%s}",
                units=["percent"],
                labels=["persistentvolumeclaim"],
                namespaced=True,
            ),
        },
        "cluster": {
            "certExpirationRemainDay": RuleTemplateConfig(
                expr="gems_cluster_component_cert_expiration_remain_seconds{%s} / 86400",
                units=["days"],
                labels=["component"],
            ),
        },
    }


class Settings(BaseModel):
    """Root settings container."""

    compiler: CompilerConfig = CompilerConfig()
    templates: dict[str, dict[str, RuleTemplateConfig]] = _default_templates()
    logging: LoggingConfig = LoggingConfig()


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Templates given in YAML are merged over the built-in registry per
    resource, so a file can add a rule type without restating the defaults.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    templates: dict[str, Any] = {
        resource: dict(rules) for resource, rules in _default_templates().items()
    }
    for resource, rules in (data.pop("templates", None) or {}).items():
        templates.setdefault(resource, {}).update(rules or {})

    _settings = Settings(**data, templates=templates)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
