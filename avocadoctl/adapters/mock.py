"""
Mock adapter — test double that records actions instead of running them.

Register it under the name of a real adapter ('tool', 'shell') to
observe exactly which tools the lifecycle engine would invoke and in
what order, or to make a given step fail.
"""

from __future__ import annotations

from typing import Any

from avocadoctl.adapters.base import Adapter, ExecutionContext
from avocadoctl.core.models.action import Receipt


class MockAdapter(Adapter):
    """Universal mock adapter for testing.

    Succeeds for everything by default. Failures and custom outputs are
    configured per action id.
    """

    def __init__(
        self,
        adapter_name: str = "mock",
        available: bool = True,
        default_output: str = "",
    ):
        self._name = adapter_name
        self._available = available
        self._default_output = default_output
        self._responses: dict[str, Receipt] = {}
        self._call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[ExecutionContext]:
        """All execution contexts this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def action_ids(self) -> list[str]:
        """Ids of executed actions, in call order."""
        return [c.action.id for c in self._call_log]

    def calls_matching(self, **params: Any) -> list[ExecutionContext]:
        """Calls whose action params contain all of *params*."""
        return [
            c for c in self._call_log
            if all(c.action.params.get(k) == v for k, v in params.items())
        ]

    def is_available(self) -> bool:
        return self._available

    def set_response(self, action_id: str, receipt: Receipt) -> None:
        """Set a custom response for a specific action id."""
        self._responses[action_id] = receipt

    def set_output(self, action_id: str, output: str) -> None:
        """Succeed with the given output for a specific action id."""
        self._responses[action_id] = Receipt.success(
            adapter=self._name,
            action_id=action_id,
            output=output,
        )

    def set_failure(self, action_id: str, error: str = "Mock failure") -> None:
        """Configure a specific action to fail."""
        self._responses[action_id] = Receipt.failure(
            adapter=self._name,
            action_id=action_id,
            error=error,
        )

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self._call_log.append(context)

        if context.action.id in self._responses:
            return self._responses[context.action.id]

        return Receipt.success(
            adapter=self._name,
            action_id=context.action.id,
            output=self._default_output,
            metadata={"mock": True},
        )

    def reset(self) -> None:
        """Clear call log and custom responses."""
        self._call_log.clear()
        self._responses.clear()
