"""
HITL mount lifecycle manager.

Mounts extensions exported over NFS by a development host onto the
extensions path, through ``systemd-mount`` so the mounts are transient
units the supervisor orders against network teardown at shutdown.

For every service an extension lists in AVOCADO_ENABLE_SERVICES a
drop-in is written that makes the service require, bind to and start
after the mount. Unmount removes those drop-ins first, then the mount.

Each extension of a batch is handled independently: a failure is
recorded on its outcome and the next extension is processed.
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
from avocadoctl.core.models.directive import DirectiveKind
from avocadoctl.core.models.extension import extension_name_error
from avocadoctl.core.services import systemd_units
from avocadoctl.core.services.directive_aggregator import aggregate_directives, load_directives
from avocadoctl.core.services.release_parser import find_extension_release

logger = logging.getLogger(__name__)

NFS_OPTIONS = (
    "vers=4,hard,timeo=600,retrans=2,"
    "acregmin=0,acregmax=1,acdirmin=0,acdirmax=1,lookupcache=none"
)


@dataclass
class ExtensionOutcome:
    """What happened to one extension of a HITL batch."""

    extension: str
    mount_point: str
    error: str | None = None
    services: list[str] = field(default_factory=list)
    dropins: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        return {
            "extension": self.extension,
            "mount_point": self.mount_point,
            "mount_unit": systemd_units.mount_unit_name(self.mount_point),
            "ok": self.ok,
            "error": self.error,
            "services": self.services,
            "dropins": self.dropins,
        }


@dataclass
class HitlReport:
    """Result of a HITL mount or unmount batch."""

    operation: str
    execution: ExecutionReport
    outcomes: list[ExtensionOutcome] = field(default_factory=list)

    @property
    def failures(self) -> list[ExtensionOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def ok(self) -> bool:
        return not self.failures

    def summary(self) -> str:
        done = len(self.outcomes) - len(self.failures)
        return f"{done}/{len(self.outcomes)} extension(s) {self.operation}ed"

    def to_dict(self) -> dict:
        return {
            "operation": self.operation,
            "ok": self.ok,
            "summary": self.summary(),
            "extensions": [o.to_dict() for o in self.outcomes],
            "execution": self.execution.to_dict(),
        }


class HitlMountManager:
    """Create and tear down HITL mounts and their service drop-ins."""

    def __init__(self, config: Config, registry: AdapterRegistry):
        self.config = config
        self.registry = registry

    def mount_point(self, extension: str) -> Path:
        return self.config.get_extensions_dir() / extension

    # ── Mount ────────────────────────────────────────────────────

    def mount(
        self,
        server: str,
        extensions: list[str],
        port: int | None = None,
    ) -> HitlReport:
        port = port or self.config.avocado.hitl.server_port
        report = HitlReport("mount", self._new_execution("hitl-mount"))
        logger.info("Mounting %d HITL extension(s) from %s:%s", len(extensions), server, port)

        for extension in extensions:
            outcome = ExtensionOutcome(extension, str(self.mount_point(extension)))
            report.outcomes.append(outcome)
            self._mount_one(server, port, outcome, report.execution)
            if outcome.ok:
                logger.info("Mounted extension %s at %s", extension, outcome.mount_point)
            else:
                logger.error("Extension %s: %s", extension, outcome.error)

        if any(o.dropins for o in report.outcomes):
            self._daemon_reload(report.execution)
        return report

    def _mount_one(self, server: str, port: int, outcome: ExtensionOutcome,
                   execution: ExecutionReport) -> None:
        ext = outcome.extension
        mount_point = outcome.mount_point

        outcome.error = extension_name_error(ext)
        if outcome.error:
            return

        receipt = run_action(
            filesystem_action(f"hitl-mkdir:{ext}", "mkdir", mount_point,
                              phase="hitl-mount", extension=ext),
            self.registry,
            execution,
        )
        if receipt.failed:
            outcome.error = f"Failed to create directory {mount_point}: {receipt.error}"
            return
        created = receipt.metadata.get("created", False)

        receipt = run_action(
            tool_action(
                f"hitl-mount:{ext}",
                "systemd-mount",
                "--type=nfs4",
                f"--options=port={port},{NFS_OPTIONS}",
                f"{server}:/{ext}",
                mount_point,
                phase="hitl-mount",
                extension=ext,
            ),
            self.registry,
            execution,
        )
        if receipt.failed:
            outcome.error = f"Failed to mount extension '{ext}' to '{mount_point}': {receipt.error}"
            if created:
                run_action(
                    filesystem_action(f"hitl-rmdir:{ext}", "rmdir", mount_point,
                                      phase="hitl-mount", extension=ext),
                    self.registry,
                    execution,
                )
            return

        self._write_dropins(outcome, execution)

    def _write_dropins(self, outcome: ExtensionOutcome, execution: ExecutionReport) -> None:
        ext = outcome.extension
        releases = find_extension_release(Path(outcome.mount_point), ext)
        if not releases:
            logger.debug("No release metadata in %s", outcome.mount_point)
            return

        services = aggregate_directives(load_directives(releases), DirectiveKind.ENABLE_SERVICES)
        outcome.services = services.to_list()
        if not outcome.services:
            return

        logger.info("Found %d enabled service(s) for %s: %s",
                    len(outcome.services), ext, " ".join(outcome.services))

        dropin_root = self.config.get_dropin_dir()
        content = systemd_units.render_dropin(outcome.mount_point)
        for service in outcome.services:
            path = systemd_units.dropin_path(dropin_root, service, ext)
            receipt = run_action(
                filesystem_action(f"hitl-dropin:{ext}:{service}", "write", str(path),
                                  phase="hitl-mount", extension=ext, content=content),
                self.registry,
                execution,
            )
            if receipt.failed:
                outcome.error = f"Failed to write drop-in {path}: {receipt.error}"
                continue
            outcome.dropins.append(str(path))
            logger.info("Created drop-in %s", path)

    # ── Unmount ──────────────────────────────────────────────────

    def unmount(self, extensions: list[str]) -> HitlReport:
        report = HitlReport("unmount", self._new_execution("hitl-unmount"))
        logger.info("Unmounting %d HITL extension(s)", len(extensions))

        for extension in extensions:
            outcome = ExtensionOutcome(extension, str(self.mount_point(extension)))
            report.outcomes.append(outcome)
            self._unmount_one(outcome, report.execution)
            if outcome.ok:
                logger.info("Unmounted extension %s", extension)
            else:
                logger.error("Extension %s: %s", extension, outcome.error)

        if any(o.dropins for o in report.outcomes):
            self._daemon_reload(report.execution)
        return report

    def _unmount_one(self, outcome: ExtensionOutcome, execution: ExecutionReport) -> None:
        ext = outcome.extension
        outcome.error = extension_name_error(ext)
        if outcome.error:
            return

        for path in systemd_units.find_dropins(self.config.get_dropin_dir(), ext):
            unit_dir = path.parent
            receipt = run_action(
                filesystem_action(f"hitl-dropin-rm:{ext}:{unit_dir.name}", "remove", str(path),
                                  phase="hitl-unmount", extension=ext),
                self.registry,
                execution,
            )
            if receipt.failed:
                outcome.error = f"Failed to remove drop-in {path}: {receipt.error}"
                continue
            outcome.dropins.append(str(path))
            logger.info("Removed drop-in %s", path)
            run_action(
                filesystem_action(f"hitl-dropin-rmdir:{ext}:{unit_dir.name}", "rmdir",
                                  str(unit_dir), phase="hitl-unmount", extension=ext),
                self.registry,
                execution,
            )

        receipt = run_action(
            tool_action(f"hitl-umount:{ext}", "systemd-umount", outcome.mount_point,
                        phase="hitl-unmount", extension=ext),
            self.registry,
            execution,
        )
        if receipt.failed:
            outcome.error = f"Failed to unmount extension '{ext}' from '{outcome.mount_point}': {receipt.error}"

    # ── Helpers ──────────────────────────────────────────────────

    def _daemon_reload(self, execution: ExecutionReport) -> None:
        run_best_effort(
            [tool_action("daemon-reload", "systemctl", "daemon-reload", phase="hitl")],
            self.registry,
            execution,
            "Supervisor reload",
        )

    @staticmethod
    def _new_execution(operation: str) -> ExecutionReport:
        return ExecutionReport(operation_id=generate_operation_id(), operation=operation)
