"""
Extension use cases — merge, unmerge, refresh, status and list.

Each function is one CLI verb: load config, wire the adapter registry,
run the engine and hand back a result the CLI can render or dump as
JSON. Nothing here prints.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from avocadoctl.adapters.registry import AdapterRegistry, default_registry
from avocadoctl.core.config.loader import ConfigError, load_config
from avocadoctl.core.engine.executor import ExecutionReport, generate_operation_id
from avocadoctl.core.engine.lifecycle import ExtensionLifecycle
from avocadoctl.core.models.extension import Extension
from avocadoctl.core.services.extension_discovery import DiscoveryError, list_extensions
from avocadoctl.core.services.sysext_status import ScopeStatus, query_status

logger = logging.getLogger(__name__)


@dataclass
class LifecycleResult:
    """Result of a merge, unmerge or refresh."""

    operation: str
    report: ExecutionReport | None = None
    dry_run: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        result: dict = {"operation": self.operation, "ok": self.ok, "dry_run": self.dry_run}
        if self.error:
            result["error"] = self.error
        if self.report:
            result["report"] = self.report.to_dict()
        return result


def run_merge(
    config_path: Path | None = None,
    dry_run: bool = False,
    registry: AdapterRegistry | None = None,
) -> LifecycleResult:
    """Merge all extensions, then run their post-merge directives."""
    return _run_lifecycle("merge", config_path, dry_run, registry)


def run_unmerge(
    config_path: Path | None = None,
    dry_run: bool = False,
    registry: AdapterRegistry | None = None,
) -> LifecycleResult:
    """Run pre-unmerge directives, unmerge all extensions, rebuild module deps."""
    return _run_lifecycle("unmerge", config_path, dry_run, registry)


def run_refresh(
    config_path: Path | None = None,
    dry_run: bool = False,
    registry: AdapterRegistry | None = None,
) -> LifecycleResult:
    """Unmerge then merge, with a single dependency rebuild."""
    return _run_lifecycle("refresh", config_path, dry_run, registry)


def _run_lifecycle(
    operation: str,
    config_path: Path | None,
    dry_run: bool,
    registry: AdapterRegistry | None,
) -> LifecycleResult:
    result = LifecycleResult(operation=operation, dry_run=dry_run)

    try:
        config = load_config(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    if registry is None:
        registry = default_registry(dry_run=dry_run)

    lifecycle = ExtensionLifecycle(config, registry)
    report = getattr(lifecycle, operation)()
    result.report = report

    if report.error:
        result.error = report.error
        logger.error("%s failed at step %s: %s", operation, report.failed_step, report.error)
    else:
        logger.info("%s completed (%d action(s), %d warning(s))",
                    operation, report.total, len(report.warnings))
    return result


# ── Status ───────────────────────────────────────────────────────


@dataclass
class StatusResult:
    """Merged extensions per scope."""

    scopes: list[ScopeStatus] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        result: dict = {"scopes": [s.to_dict() for s in self.scopes]}
        if self.error:
            result["error"] = self.error
        return result


def get_status(
    config_path: Path | None = None,
    registry: AdapterRegistry | None = None,
) -> StatusResult:
    result = StatusResult()

    try:
        load_config(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    if registry is None:
        registry = default_registry()

    report = ExecutionReport(operation_id=generate_operation_id(), operation="status")
    result.scopes = query_status(registry, report)
    return result


# ── List ─────────────────────────────────────────────────────────


@dataclass
class ListResult:
    """Extensions available in the extensions path."""

    extensions_dir: Path | None = None
    extensions: list[Extension] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        result: dict = {
            "extensions_dir": str(self.extensions_dir) if self.extensions_dir else None,
            "extensions": [
                {"name": e.name, "path": str(e.path), "image": e.image}
                for e in self.extensions
            ],
        }
        if self.error:
            result["error"] = self.error
        return result


def list_available(config_path: Path | None = None) -> ListResult:
    result = ListResult()

    try:
        config = load_config(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    result.extensions_dir = config.get_extensions_dir()
    try:
        result.extensions = list_extensions(result.extensions_dir)
    except DiscoveryError as e:
        result.error = str(e)
    return result
