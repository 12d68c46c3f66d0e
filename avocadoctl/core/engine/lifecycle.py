"""
Lifecycle orchestrator — merge, unmerge and refresh.

Merge:
    1. systemd-sysext merge, systemd-confext merge          (fatal)
    2. AVOCADO_ON_MERGE commands of the merged set          (best effort)
    3. depmod, once, if any extension declared ON_MERGE=depmod   (fatal)
    4. modprobe each AVOCADO_MODPROBE module, only after 3  (best effort)

Unmerge:
    1. AVOCADO_ON_UNMERGE commands, while content is still present
    2. systemd-sysext unmerge, systemd-confext unmerge      (fatal)
    3. depmod, always                                       (fatal)

Refresh runs unmerge 1-2, then the full merge, so depmod runs exactly
once and reflects the final merged set.

Nothing here raises for runtime failures: the first fatal failure is
recorded on the ExecutionReport and the operation stops there. No
rollback is attempted.
"""

from __future__ import annotations

import json
import logging

from avocadoctl.adapters.registry import AdapterRegistry
from avocadoctl.core.engine.executor import (
    ExecutionReport,
    command_actions,
    generate_operation_id,
    run_action,
    run_best_effort,
    tool_action,
)
from avocadoctl.core.models.config import Config, ConfigError
from avocadoctl.core.models.directive import DirectiveKind
from avocadoctl.core.services.directive_aggregator import DirectiveSnapshot
from avocadoctl.core.services.extension_discovery import discover_releases

logger = logging.getLogger(__name__)

DEPMOD = "depmod"
MODPROBE = "modprobe"
HIERARCHY_TOOLS = ("systemd-sysext", "systemd-confext")


class ExtensionLifecycle:
    """Runs the merge/unmerge/refresh protocols against one config."""

    def __init__(self, config: Config, registry: AdapterRegistry):
        self.config = config
        self.registry = registry

    # ── Public operations ────────────────────────────────────────

    def merge(self, report: ExecutionReport | None = None) -> ExecutionReport:
        report = report or self._new_report("merge")
        logger.info("Starting extension merge process")

        try:
            mutable = {
                "systemd-sysext": self.config.get_sysext_mutable(),
                "systemd-confext": self.config.get_confext_mutable(),
            }
        except ConfigError as e:
            report.fail("config", str(e))
            return report

        for tool in HIERARCHY_TOOLS:
            if not self._primitive(
                report, "merge", tool, "merge", f"--mutable={mutable[tool]}", "--json=short"
            ):
                return report

        self._post_merge(report)
        return report

    def unmerge(
        self,
        report: ExecutionReport | None = None,
        rebuild_deps: bool = True,
    ) -> ExecutionReport:
        report = report or self._new_report("unmerge")
        logger.info("Starting extension unmerge process")

        snapshot = self._snapshot()
        commands = snapshot.actions(DirectiveKind.ON_UNMERGE).to_list()
        if commands:
            logger.info("Executing %d pre-unmerge command(s)", len(commands))
            run_best_effort(
                command_actions(commands, "on-unmerge"), self.registry, report, "Pre-unmerge command"
            )

        for tool in HIERARCHY_TOOLS:
            if not self._primitive(report, "unmerge", tool, "unmerge", "--json=short"):
                return report

        if rebuild_deps:
            self._rebuild_deps(report, phase="post-unmerge")
        return report

    def refresh(self) -> ExecutionReport:
        report = self._new_report("refresh")
        logger.info("Refreshing extensions (unmerge then merge)")

        self.unmerge(report, rebuild_deps=False)
        if not report.ok:
            return report
        return self.merge(report)

    # ── Steps ────────────────────────────────────────────────────

    def _snapshot(self) -> DirectiveSnapshot:
        snapshot = DirectiveSnapshot(discover_releases(self.config.get_release_dirs()))
        logger.debug("Release metadata found for: %s", ", ".join(snapshot.extensions) or "-")
        return snapshot

    def _primitive(self, report: ExecutionReport, phase: str, tool: str, *args: str) -> bool:
        """Run a merge/unmerge primitive. False (and report failed) on error."""
        action = tool_action(f"{phase}:{tool}", tool, *args, phase=phase)
        receipt = run_action(action, self.registry, report)
        if receipt.failed:
            report.fail(action.id, f"{tool} {phase} failed: {receipt.error}")
            return False

        parsed = _parse_json(receipt.output)
        if parsed is not None:
            receipt.metadata["json"] = parsed
        if receipt.output:
            logger.info("%s %s: %s", tool, phase, receipt.output)
        else:
            logger.info("%s %s: no output (operation may have completed with no changes)", tool, phase)
        return True

    def _post_merge(self, report: ExecutionReport) -> None:
        snapshot = self._snapshot()
        on_merge = snapshot.actions(DirectiveKind.ON_MERGE)
        rebuild = DEPMOD in on_merge
        commands = on_merge.without(DEPMOD).to_list()

        if commands:
            logger.info("Executing %d post-merge command(s)", len(commands))
            run_best_effort(
                command_actions(commands, "on-merge"), self.registry, report, "Post-merge command"
            )

        modules = snapshot.actions(DirectiveKind.MODPROBE).to_list()
        if not rebuild:
            if modules:
                logger.info(
                    "Skipping module loading for %s: no extension requested depmod",
                    ", ".join(modules),
                )
            return

        if not self._rebuild_deps(report, phase="post-merge"):
            return

        if modules:
            logger.info("Loading kernel modules: %s", " ".join(modules))
            run_best_effort(
                [tool_action(f"modprobe:{m}", MODPROBE, m, phase="post-merge") for m in modules],
                self.registry,
                report,
                "Module load",
            )

    def _rebuild_deps(self, report: ExecutionReport, phase: str) -> bool:
        action = tool_action(DEPMOD, DEPMOD, phase=phase)
        receipt = run_action(action, self.registry, report)
        if receipt.failed:
            report.fail(DEPMOD, f"depmod failed: {receipt.error}")
            return False
        return True

    @staticmethod
    def _new_report(operation: str) -> ExecutionReport:
        return ExecutionReport(operation_id=generate_operation_id(), operation=operation)


def _parse_json(output: str) -> object | None:
    if not output.strip():
        return None
    try:
        return json.loads(output)
    except ValueError:
        return None
