"""
Adapter registry — central dispatch for all side effects.

The lifecycle engine and the HITL manager never talk to adapters
directly. They hand Actions to the registry, which resolves the
adapter, validates, honours dry-run and returns a Receipt.
"""

from __future__ import annotations

import logging
import time

from avocadoctl.adapters.base import Adapter, ExecutionContext
from avocadoctl.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Registry and dispatcher for adapters."""

    def __init__(self, dry_run: bool = False):
        self._adapters: dict[str, Adapter] = {}
        self._dry_run = dry_run

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    def register(self, adapter: Adapter) -> None:
        name = adapter.name
        if name in self._adapters:
            logger.warning("Overwriting existing adapter: %s", name)
        self._adapters[name] = adapter
        logger.debug("Registered adapter: %s", name)

    def get(self, name: str) -> Adapter | None:
        return self._adapters.get(name)

    def execute_action(self, action: Action, working_dir: str = "/") -> Receipt:
        """Execute an action through its adapter.

        Resolves the adapter, validates the action, then executes it
        (or, in dry-run mode, returns a skipped receipt). Never raises.
        """
        start_time = time.monotonic()

        context = ExecutionContext(
            action=action,
            working_dir=working_dir,
            dry_run=self._dry_run,
        )

        adapter = self.get(action.adapter)
        if adapter is None:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"No adapter registered for '{action.adapter}'",
            )

        try:
            is_valid, error_msg = adapter.validate(context)
        except Exception as e:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Validation error: {e}",
            )
        if not is_valid:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Validation failed: {error_msg}",
            )

        if self._dry_run:
            return Receipt.skip(
                adapter=action.adapter,
                action_id=action.id,
                reason=f"[dry-run] Would run {action.label}",
                metadata={"dry_run": True},
            )

        try:
            receipt = adapter.execute(context)
        except Exception as e:
            logger.error("Adapter %s raised during execution: %s", action.adapter, e)
            receipt = Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Unexpected error: {e}",
            )

        receipt.duration_ms = int((time.monotonic() - start_time) * 1000)
        return receipt


def default_registry(dry_run: bool = False) -> AdapterRegistry:
    """Registry wired with the real host adapters."""
    from avocadoctl.adapters.shell.command import ShellCommandAdapter
    from avocadoctl.adapters.shell.filesystem import FilesystemAdapter
    from avocadoctl.adapters.system.tools import SystemToolAdapter

    registry = AdapterRegistry(dry_run=dry_run)
    registry.register(SystemToolAdapter())
    registry.register(ShellCommandAdapter())
    registry.register(FilesystemAdapter())
    return registry
