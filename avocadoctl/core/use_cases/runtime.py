"""
Runtime use cases — enable and disable extensions for a runtime version.

Nothing here prints; the CLI renders the returned result.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from avocadoctl.adapters.registry import AdapterRegistry, default_registry
from avocadoctl.core.config.loader import ConfigError, load_config
from avocadoctl.core.services.runtime_links import (
    RuntimeLinkManager,
    RuntimeReport,
    resolve_runtime_version,
)

logger = logging.getLogger(__name__)


@dataclass
class RuntimeResult:
    """Result of an enable or disable."""

    operation: str
    report: RuntimeReport | None = None
    dry_run: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.report is not None and self.report.ok

    def to_dict(self) -> dict:
        result: dict = {"operation": self.operation, "ok": self.ok, "dry_run": self.dry_run}
        if self.error:
            result["error"] = self.error
        if self.report:
            result["report"] = self.report.to_dict()
        return result


def enable_extensions(
    extensions: list[str],
    runtime: str | None = None,
    config_path: Path | None = None,
    dry_run: bool = False,
    registry: AdapterRegistry | None = None,
) -> RuntimeResult:
    """Link extensions into the runtime version's directory."""
    result = RuntimeResult(operation="enable", dry_run=dry_run)
    if not extensions:
        result.error = "No extensions specified"
        return result
    return _run(result, config_path, registry, runtime,
                lambda manager, version: manager.enable(extensions, version))


def disable_extensions(
    extensions: list[str],
    runtime: str | None = None,
    all_extensions: bool = False,
    config_path: Path | None = None,
    dry_run: bool = False,
    registry: AdapterRegistry | None = None,
) -> RuntimeResult:
    """Remove extension links from the runtime version's directory."""
    result = RuntimeResult(operation="disable", dry_run=dry_run)
    if not extensions and not all_extensions:
        result.error = "No extensions specified (use --all to disable every extension)"
        return result
    return _run(result, config_path, registry, runtime,
                lambda manager, version: manager.disable(extensions, version, all_extensions))


def _run(
    result: RuntimeResult,
    config_path: Path | None,
    registry: AdapterRegistry | None,
    runtime: str | None,
    operate: Callable[[RuntimeLinkManager, str], RuntimeReport],
) -> RuntimeResult:
    try:
        config = load_config(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    if registry is None:
        registry = default_registry(dry_run=result.dry_run)

    version = resolve_runtime_version(config, runtime)
    report = operate(RuntimeLinkManager(config, registry), version)
    result.report = report

    if report.execution.error:
        result.error = report.execution.error
        logger.error("%s failed: %s", result.operation, report.execution.error)
    else:
        logger.info("%s: %s", result.operation, report.summary())
    return result
