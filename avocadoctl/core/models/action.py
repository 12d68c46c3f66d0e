"""
Action and Receipt models — the execution contract.

An Action describes one external side effect (a tool invocation, a
directive command, a filesystem change). A Receipt records what
happened when an adapter carried it out. Adapters return Receipts;
they never raise.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class Action(BaseModel):
    """A single side effect requested by the lifecycle engine.

    Action ids are deterministic (``merge:systemd-sysext``,
    ``modprobe:nvidia``, ``hitl-mount:foo``) so a run can be inspected
    and test doubles can target a specific step.
    """

    id: str
    adapter: str                        # "tool", "shell" or "filesystem"
    phase: str = ""                     # merge, unmerge, post-merge, hitl-mount, ...
    params: dict[str, Any] = Field(default_factory=dict)
    for_extension: str | None = None    # None = applies to the whole set

    @property
    def label(self) -> str:
        """Short human-readable description used in logs and CLI output."""
        if "argv" in self.params:
            return " ".join(self.params["argv"])
        if "command" in self.params:
            return str(self.params["command"])
        if "path" in self.params:
            return f"{self.params.get('operation', '?')} {self.params['path']}"
        return self.id


class Receipt(BaseModel):
    """Outcome of executing an Action."""

    adapter: str
    action_id: str
    status: Literal["ok", "skipped", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @classmethod
    def success(
        cls,
        adapter: str,
        action_id: str,
        output: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="ok",
            output=output,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        adapter: str,
        action_id: str,
        error: str,
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="failed",
            error=error,
            **kwargs,
        )

    @classmethod
    def skip(
        cls,
        adapter: str,
        action_id: str,
        reason: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a skip receipt (dry-run or nothing to do)."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="skipped",
            output=reason,
            **kwargs,
        )
