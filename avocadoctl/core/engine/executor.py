"""
Engine executor — build actions and run them through the registry.

Flow:
    action lists → Actions (deterministic ids) → registry → Receipts → report

Builders are pure; ``run_action`` is the single dispatch point and
records every receipt on the report it is given.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

from avocadoctl.adapters.registry import AdapterRegistry
from avocadoctl.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


@dataclass
class ExecutionReport:
    """Receipts of one operation, in execution order."""

    operation_id: str = ""
    operation: str = ""
    receipts: list[Receipt] = field(default_factory=list)
    actions: dict[str, Action] = field(default_factory=dict)
    error: str | None = None
    failed_step: str | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.receipts)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.receipts if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.receipts if r.failed)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.receipts if r.status == "skipped")

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def status(self) -> str:
        if self.error:
            return "failed"
        if self.failed:
            return "partial"
        return "ok"

    def fail(self, step: str, error: str) -> None:
        """Record a fatal failure. The first one wins."""
        if self.error is None:
            self.error = error
            self.failed_step = step

    def receipts_for(self, prefix: str) -> list[Receipt]:
        """Receipts whose action id starts with *prefix*."""
        return [r for r in self.receipts if r.action_id.startswith(prefix)]

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "operation": self.operation,
            "status": self.status,
            "error": self.error,
            "failed_step": self.failed_step,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "warnings": self.warnings,
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }


# ── Builders ─────────────────────────────────────────────────────


def tool_action(action_id: str, tool: str, *args: str, phase: str = "",
                extension: str | None = None) -> Action:
    """Action invoking an external tool (adapter 'tool')."""
    return Action(
        id=action_id,
        adapter="tool",
        phase=phase,
        params={"tool": tool, "args": list(args), "argv": [tool, *args]},
        for_extension=extension,
    )


def command_actions(commands: list[str], phase: str) -> list[Action]:
    """One shell action per directive command, ids ``<phase>:<n>``."""
    return [
        Action(
            id=f"{phase}:{index}",
            adapter="shell",
            phase=phase,
            params={"command": command},
        )
        for index, command in enumerate(commands)
    ]


def filesystem_action(action_id: str, operation: str, path: str, *, phase: str = "",
                      extension: str | None = None, content: str | None = None,
                      target: str | None = None) -> Action:
    params: dict = {"operation": operation, "path": path}
    if content is not None:
        params["content"] = content
    if target is not None:
        params["target"] = target
    return Action(
        id=action_id,
        adapter="filesystem",
        phase=phase,
        params=params,
        for_extension=extension,
    )


# ── Dispatch ─────────────────────────────────────────────────────


def run_action(action: Action, registry: AdapterRegistry, report: ExecutionReport) -> Receipt:
    """Execute *action* and append its receipt to *report*."""
    logger.info("Running %s", action.label)
    receipt = registry.execute_action(action)
    report.receipts.append(receipt)
    report.actions[receipt.action_id] = action

    if receipt.failed:
        logger.debug("✗ %s: %s", action.id, receipt.error)
    else:
        logger.debug("%s %s", "✓" if receipt.ok else "⊘", action.id)
    return receipt


def run_best_effort(actions: list[Action], registry: AdapterRegistry,
                    report: ExecutionReport, what: str) -> int:
    """Run every action; failures become warnings. Returns failure count."""
    failures = 0
    for action in actions:
        receipt = run_action(action, registry, report)
        if receipt.failed:
            failures += 1
            message = f"{what} '{action.label}' failed: {receipt.error}"
            logger.warning(message)
            report.warnings.append(message)
    return failures


def generate_operation_id() -> str:
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    return f"op-{now}-{uuid.uuid4().hex[:6]}"
