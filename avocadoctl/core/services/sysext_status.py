"""
Merged-extension status, as reported by systemd-sysext / systemd-confext.

Both tools are asked for ``status --json=short``. Older tools print the
tabular form instead::

    HIERARCHY EXTENSIONS SINCE
    /usr      base,app   Mon 2026-01-05 10:00:00 UTC

so the text layout is parsed as a fallback.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from avocadoctl.adapters.registry import AdapterRegistry
from avocadoctl.core.engine.executor import ExecutionReport, run_action, tool_action

logger = logging.getLogger(__name__)

SCOPES = (
    ("sysext", "systemd-sysext", "System Extensions (/opt, /usr)"),
    ("confext", "systemd-confext", "Configuration Extensions (/etc)"),
)


@dataclass
class HierarchyStatus:
    """One merged hierarchy and the extensions layered onto it."""

    hierarchy: str
    extensions: list[str] = field(default_factory=list)
    since: str | None = None

    def to_dict(self) -> dict:
        return {
            "hierarchy": self.hierarchy,
            "extensions": self.extensions,
            "since": self.since,
        }


@dataclass
class ScopeStatus:
    """Status of one extension scope (sysext or confext)."""

    scope: str
    label: str
    hierarchies: list[HierarchyStatus] = field(default_factory=list)
    error: str | None = None

    @property
    def merged(self) -> list[HierarchyStatus]:
        return [h for h in self.hierarchies if h.extensions]

    def to_dict(self) -> dict:
        return {
            "scope": self.scope,
            "label": self.label,
            "error": self.error,
            "hierarchies": [h.to_dict() for h in self.hierarchies],
        }


def parse_status_output(output: str) -> list[HierarchyStatus]:
    """Parse status output, JSON first, then the text table."""
    if not output.strip():
        return []
    try:
        data = json.loads(output)
    except ValueError:
        return parse_status_text(output)
    return parse_status_json(data)


def parse_status_json(data: object) -> list[HierarchyStatus]:
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        logger.warning("Unexpected status JSON: %r", data)
        return []

    result = []
    for entry in data:
        if not isinstance(entry, dict) or "hierarchy" not in entry:
            continue
        result.append(
            HierarchyStatus(
                hierarchy=str(entry["hierarchy"]),
                extensions=_extension_names(entry.get("extensions")),
                since=_format_since(entry.get("since")),
            )
        )
    return result


def parse_status_text(output: str) -> list[HierarchyStatus]:
    result = []
    for line in output.splitlines():
        line = line.strip()
        if not line or line.startswith("HIERARCHY"):
            continue
        parts = line.split()
        if len(parts) < 2:
            logger.debug("Ignoring status line %r", line)
            continue
        result.append(
            HierarchyStatus(
                hierarchy=parts[0],
                extensions=_extension_names(parts[1]),
                since=" ".join(parts[2:]) or None,
            )
        )
    return result


def query_status(registry: AdapterRegistry, report: ExecutionReport) -> list[ScopeStatus]:
    """Ask both tools for their status. A failing tool marks its scope only."""
    scopes = []
    for scope, tool, label in SCOPES:
        status = ScopeStatus(scope=scope, label=label)
        receipt = run_action(
            tool_action(f"status:{tool}", tool, "status", "--json=short", phase="status"),
            registry,
            report,
        )
        if receipt.failed:
            status.error = f"Error getting {label.split(' (')[0].lower()} status: {receipt.error}"
            logger.warning(status.error)
        else:
            status.hierarchies = parse_status_output(receipt.output)
        scopes.append(status)
    return scopes


def _extension_names(value: object) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        names = value.replace(",", " ").split()
    elif isinstance(value, list):
        names = [str(v) for v in value]
    else:
        return []
    return [n for n in names if n and n != "none"]


def _format_since(value: object) -> str | None:
    # systemd reports usec since the epoch; 0 means never merged
    if isinstance(value, int):
        if value <= 0:
            return None
        return datetime.fromtimestamp(value / 1_000_000, UTC).strftime("%Y-%m-%d %H:%M:%S UTC")
    if value in (None, ""):
        return None
    return str(value)
