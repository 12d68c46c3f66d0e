"""
HITL use cases — mount / unmount development extensions over NFS.

Mount:
    1. mount every requested extension (per-extension isolation)
    2. refresh, only if every mount succeeded, so the new content is merged

Unmount:
    1. unmerge phase (pre-unmerge commands + unmerge, no depmod)
    2. remove drop-ins and unmount every requested extension
    3. full merge phase for whatever is still available
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from avocadoctl.adapters.registry import AdapterRegistry, default_registry
from avocadoctl.core.config.loader import ConfigError, load_config
from avocadoctl.core.engine.executor import ExecutionReport
from avocadoctl.core.engine.lifecycle import ExtensionLifecycle
from avocadoctl.core.services.hitl_mounts import HitlMountManager, HitlReport

logger = logging.getLogger(__name__)


@dataclass
class HitlResult:
    """Result of a HITL mount or unmount, including its lifecycle steps."""

    operation: str
    hitl: HitlReport | None = None
    unmerge: ExecutionReport | None = None
    lifecycle: ExecutionReport | None = None     # refresh after mount, merge after unmount
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        result: dict = {"operation": self.operation, "ok": self.ok}
        if self.error:
            result["error"] = self.error
        if self.hitl:
            result["hitl"] = self.hitl.to_dict()
        if self.unmerge:
            result["unmerge"] = self.unmerge.to_dict()
        if self.lifecycle:
            result["lifecycle"] = self.lifecycle.to_dict()
        return result


def hitl_mount(
    server: str,
    extensions: list[str],
    port: int | None = None,
    config_path: Path | None = None,
    dry_run: bool = False,
    registry: AdapterRegistry | None = None,
) -> HitlResult:
    """Mount *extensions* from *server* and refresh the merged set."""
    result = HitlResult(operation="mount")

    try:
        config = load_config(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    if registry is None:
        registry = default_registry(dry_run=dry_run)

    result.hitl = HitlMountManager(config, registry).mount(server, extensions, port=port)
    if not result.hitl.ok:
        failed = ", ".join(o.extension for o in result.hitl.failures)
        result.error = f"{len(result.hitl.failures)} extension(s) failed to mount: {failed}"
        logger.error("%s; skipping refresh", result.error)
        return result

    result.lifecycle = ExtensionLifecycle(config, registry).refresh()
    if not result.lifecycle.ok:
        result.error = f"Refresh after mount failed: {result.lifecycle.error}"
    return result


def hitl_unmount(
    extensions: list[str],
    config_path: Path | None = None,
    dry_run: bool = False,
    registry: AdapterRegistry | None = None,
) -> HitlResult:
    """Unmerge, unmount *extensions* and their drop-ins, then merge again."""
    result = HitlResult(operation="unmount")

    try:
        config = load_config(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    if registry is None:
        registry = default_registry(dry_run=dry_run)

    lifecycle = ExtensionLifecycle(config, registry)
    result.unmerge = lifecycle.unmerge(rebuild_deps=False)
    if not result.unmerge.ok:
        result.error = f"Unmerge before unmount failed: {result.unmerge.error}"
        logger.error("%s; leaving mounts in place", result.error)
        return result

    result.hitl = HitlMountManager(config, registry).unmount(extensions)
    if not result.hitl.ok:
        failed = ", ".join(o.extension for o in result.hitl.failures)
        result.error = f"{len(result.hitl.failures)} extension(s) failed to unmount: {failed}"

    result.lifecycle = lifecycle.merge()
    if not result.lifecycle.ok and result.error is None:
        result.error = f"Merge after unmount failed: {result.lifecycle.error}"
    return result
