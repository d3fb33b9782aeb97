#!/usr/bin/env python3
"""Compile a snapshot of native alerting objects into normalized alerts.

The snapshot is a YAML document with the keys ``prometheusRule``,
``alertmanagerConfig`` and ``silences`` (each optional), as returned by the
Kubernetes / Alertmanager APIs.

Usage::

    # Print compiled alerts as JSON
    python scripts/compile_alerts.py snapshot.yaml

    # Include origin handles and a custom config
    python scripts/compile_alerts.py snapshot.yaml --origin --config config/settings.yaml
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

import structlog
import yaml

from alertcompiler.compiler.forward import RawAlertResource
from alertcompiler.core.config import load_settings
from alertcompiler.core.logging import setup_logging
from alertcompiler.native.types import AlertmanagerConfig, PrometheusRule, Silence

logger = structlog.get_logger(__name__)


def load_snapshot(path: Path) -> dict[str, Any]:
    with open(path) as f:
        raw = yaml.safe_load(f)
    return raw if isinstance(raw, dict) else {}


def run(args: argparse.Namespace) -> int:
    settings = load_settings(args.config)
    setup_logging(level=args.log_level)

    data = load_snapshot(Path(args.snapshot))
    prometheus_rule = (
        PrometheusRule.model_validate(data["prometheusRule"]) if data.get("prometheusRule") else None
    )
    am_config = (
        AlertmanagerConfig.model_validate(data["alertmanagerConfig"])
        if data.get("alertmanagerConfig")
        else None
    )
    silences = [Silence.model_validate(s) for s in data.get("silences") or []]

    raw = RawAlertResource(prometheus_rule, am_config, silences, settings=settings)
    result = raw.to_alerts(contain_origin=args.origin)

    payload = []
    for alert in result.alerts:
        item = alert.model_dump(mode="json", by_alias=True)
        if args.origin and alert.origin is not None:
            item["origin"] = alert.origin.model_dump(mode="json", by_alias=True)
        payload.append(item)
    json.dump(payload, sys.stdout, indent=2)
    sys.stdout.write("\n")

    if result.error is not None:
        for err in result.error.errors:
            logger.error(
                "alert_compile_failed",
                namespace=err.namespace,
                alert=err.name,
                error=str(err.error),
            )
        return 1
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Compile PrometheusRule / AlertmanagerConfig / silences into alerts.",
    )
    parser.add_argument("snapshot", help="Path to snapshot YAML")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--origin",
        action="store_true",
        help="Include references to the source objects in the output",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    args = parser.parse_args()
    sys.exit(run(args))


if __name__ == "__main__":
    main()
