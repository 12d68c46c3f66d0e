"""
Runtime enablement — which extensions a runtime version picks up.

Each runtime version owns a directory of links into the extensions
path:

    <runtime-root>/<version>/<name>       -> <extensions-path>/<name>
    <runtime-root>/<version>/<name>.raw   -> <extensions-path>/<name>.raw

Enabling an extension links it into the version's directory, disabling
removes the link. The links are the only record of what is enabled, so
every invocation re-reads them from disk. Changes are flushed with
``sync`` because they are usually made right before a reboot.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from avocadoctl.adapters.registry import AdapterRegistry
from avocadoctl.core.engine.executor import (
    ExecutionReport,
    filesystem_action,
    generate_operation_id,
    run_action,
    run_best_effort,
    tool_action,
)
from avocadoctl.core.models.config import Config
from avocadoctl.core.models.extension import RAW_SUFFIX, Extension, extension_name_error
from avocadoctl.core.services.release_parser import parse_release_content

logger = logging.getLogger(__name__)

FALLBACK_RUNTIME_VERSION = "default"


def resolve_runtime_version(config: Config, requested: str | None = None) -> str:
    """Runtime version to act on.

    ``requested`` (from --runtime) wins, then ``avocado.runtime.version``,
    then VERSION_ID of the os-release file. Without any of them the
    fallback version is used and a warning logged.
    """
    if requested:
        return requested
    if config.avocado.runtime.version:
        return config.avocado.runtime.version

    os_release = Path(config.avocado.runtime.os_release)
    try:
        content = os_release.read_text(encoding="utf-8")
    except OSError as e:
        logger.warning("Could not read %s: %s", os_release, e)
        content = ""

    for directive in parse_release_content(content, os_release.name):
        if directive.key == "VERSION_ID" and directive.value:
            return directive.value

    logger.warning("No VERSION_ID in %s, using runtime version '%s'",
                   os_release, FALLBACK_RUNTIME_VERSION)
    return FALLBACK_RUNTIME_VERSION


def version_error(version: str) -> str | None:
    if not version or "/" in version or "\0" in version or version in (".", ".."):
        return f"Invalid runtime version '{version}'"
    return None


def link_name(name: str) -> str:
    """Extension name behind a link file name."""
    return name[: -len(RAW_SUFFIX)] if name.endswith(RAW_SUFFIX) else name


@dataclass
class LinkOutcome:
    """What happened to one extension of an enable or disable."""

    extension: str
    link: str | None = None
    target: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        return {
            "extension": self.extension,
            "ok": self.ok,
            "link": self.link,
            "target": self.target,
            "error": self.error,
        }


@dataclass
class RuntimeReport:
    """Result of enabling or disabling extensions for one runtime version."""

    operation: str
    version: str
    runtime_dir: str
    execution: ExecutionReport
    outcomes: list[LinkOutcome] = field(default_factory=list)
    all_extensions: bool = False
    synced: bool = False

    @property
    def failures(self) -> list[LinkOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def done(self) -> int:
        return len(self.outcomes) - len(self.failures)

    @property
    def ok(self) -> bool:
        return self.execution.ok and not self.failures

    def summary(self) -> str:
        return f"{self.done} extension(s) {self.operation}d for runtime {self.version}"

    def to_dict(self) -> dict:
        return {
            "operation": self.operation,
            "version": self.version,
            "runtime_dir": self.runtime_dir,
            "ok": self.ok,
            "all": self.all_extensions,
            "synced": self.synced,
            "summary": self.summary(),
            "extensions": [o.to_dict() for o in self.outcomes],
            "execution": self.execution.to_dict(),
        }


class RuntimeLinkManager:
    """Enable and disable extensions for a runtime version."""

    def __init__(self, config: Config, registry: AdapterRegistry):
        self.config = config
        self.registry = registry

    def version_dir(self, version: str) -> Path:
        return self.config.get_runtime_dir() / version

    # ── Enable ───────────────────────────────────────────────────

    def enable(self, extensions: list[str], version: str) -> RuntimeReport:
        report = self._new_report("enable", version)
        execution = report.execution
        if not execution.ok:
            return report

        version_dir = Path(report.runtime_dir)
        logger.info("Enabling %d extension(s) for runtime %s", len(extensions), version)

        receipt = run_action(
            filesystem_action("runtime-mkdir", "mkdir", str(version_dir), phase="enable"),
            self.registry,
            execution,
        )
        if receipt.failed:
            execution.fail(
                "runtime-mkdir",
                f"Failed to create runtime directory {version_dir}: {receipt.error}",
            )
            return report

        for extension in extensions:
            outcome = LinkOutcome(extension)
            report.outcomes.append(outcome)
            self._enable_one(version_dir, outcome, execution)
            if outcome.ok:
                logger.info("Enabled extension %s for runtime %s", extension, version)
            else:
                logger.error("Extension %s: %s", extension, outcome.error)

        self._sync(report)
        return report

    def _enable_one(self, version_dir: Path, outcome: LinkOutcome,
                    execution: ExecutionReport) -> None:
        ext = outcome.extension
        outcome.error = extension_name_error(ext)
        if outcome.error:
            return

        source = self._find_extension(ext)
        if source is None:
            outcome.error = f"Extension '{ext}' not found in {self.config.get_extensions_dir()}"
            return

        link = version_dir / source.path.name
        # a directory replaced by an image (or back) leaves a link of the other form
        for stale in self._links(version_dir, ext):
            if stale != link:
                run_action(
                    filesystem_action(f"enable-rm:{ext}", "remove", str(stale),
                                      phase="enable", extension=ext),
                    self.registry,
                    execution,
                )

        receipt = run_action(
            filesystem_action(f"enable:{ext}", "symlink", str(link),
                              phase="enable", extension=ext, target=str(source.path)),
            self.registry,
            execution,
        )
        if receipt.failed:
            outcome.error = f"Failed to enable extension '{ext}': {receipt.error}"
            return
        outcome.link = str(link)
        outcome.target = str(source.path)

    def _find_extension(self, name: str) -> Extension | None:
        extensions_dir = self.config.get_extensions_dir()
        for candidate in (extensions_dir / name, extensions_dir / f"{name}{RAW_SUFFIX}"):
            found = Extension.from_path(candidate)
            if found is not None and found.name == name:
                return found
        return None

    # ── Disable ──────────────────────────────────────────────────

    def disable(self, extensions: list[str], version: str,
                all_extensions: bool = False) -> RuntimeReport:
        report = self._new_report("disable", version)
        report.all_extensions = all_extensions
        execution = report.execution
        if not execution.ok:
            return report

        version_dir = Path(report.runtime_dir)
        if all_extensions:
            targets = [(link_name(p.name), [p]) for p in self._all_links(version_dir)]
            logger.info("Disabling all %d extension(s) for runtime %s", len(targets), version)
        else:
            targets = [(ext, self._links(version_dir, ext)) for ext in extensions]
            logger.info("Disabling %d extension(s) for runtime %s", len(targets), version)

        for extension, links in targets:
            outcome = LinkOutcome(extension)
            report.outcomes.append(outcome)
            outcome.error = extension_name_error(extension)
            if outcome.ok and not links:
                outcome.error = f"Extension '{extension}' is not enabled for runtime {version}"
            if outcome.ok:
                self._disable_one(links, outcome, execution)
            if outcome.ok:
                logger.info("Disabled extension %s for runtime %s", extension, version)
            else:
                logger.error("Extension %s: %s", extension, outcome.error)

        self._sync(report)
        return report

    def _disable_one(self, links: list[Path], outcome: LinkOutcome,
                     execution: ExecutionReport) -> None:
        ext = outcome.extension
        for link in links:
            receipt = run_action(
                filesystem_action(f"disable:{link.name}", "remove", str(link),
                                  phase="disable", extension=ext),
                self.registry,
                execution,
            )
            if receipt.failed:
                outcome.error = f"Failed to disable extension '{ext}': {receipt.error}"
                return
            outcome.link = str(link)

    # ── Helpers ──────────────────────────────────────────────────

    @staticmethod
    def _links(version_dir: Path, name: str) -> list[Path]:
        candidates = (version_dir / name, version_dir / f"{name}{RAW_SUFFIX}")
        return [p for p in candidates if p.is_symlink()]

    @staticmethod
    def _all_links(version_dir: Path) -> list[Path]:
        if not version_dir.is_dir():
            return []
        return sorted(p for p in version_dir.iterdir() if p.is_symlink())

    def _sync(self, report: RuntimeReport) -> None:
        if not any(o.link for o in report.outcomes):
            return
        failures = run_best_effort(
            [tool_action("sync", "sync", phase=report.operation)],
            self.registry,
            report.execution,
            "Sync",
        )
        report.synced = failures == 0 and report.execution.receipts_for("sync")[-1].ok

    def _new_report(self, operation: str, version: str) -> RuntimeReport:
        report = RuntimeReport(
            operation=operation,
            version=version,
            runtime_dir=str(self.version_dir(version)),
            execution=ExecutionReport(
                operation_id=generate_operation_id(), operation=operation
            ),
        )
        error = version_error(version)
        if error:
            report.execution.fail("runtime-version", error)
        return report
