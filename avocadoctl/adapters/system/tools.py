"""
System tool adapter — run a named host tool with an argv.

Covers every external collaborator: systemd-sysext, systemd-confext,
depmod, modprobe, systemd-mount, systemd-umount, systemctl and sync. In test
mode (AVOCADO_TEST_MODE) the tool ``X`` is resolved as ``mock-X`` on
PATH. No timeout is imposed; the wrapped tool bounds its own runtime.
"""

from __future__ import annotations

import logging
import subprocess
import time

from avocadoctl.adapters.base import Adapter, ExecutionContext
from avocadoctl.core import context as runtime
from avocadoctl.core.models.action import Receipt

logger = logging.getLogger(__name__)


class SystemToolAdapter(Adapter):
    """Invoke an external tool and capture its output.

    Action params:
        tool (str): Tool name, e.g. 'depmod'. Test mode prefixes 'mock-'.
        args (list[str]): Arguments passed after the tool name.
    """

    @property
    def name(self) -> str:
        return "tool"

    def is_available(self) -> bool:
        return True

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        tool = context.params.get("tool", "")
        if not tool:
            return False, "Missing required param: 'tool'"
        args = context.params.get("args", [])
        if not isinstance(args, list) or not all(isinstance(a, str) for a in args):
            return False, "Param 'args' must be a list of strings"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        tool = context.params["tool"]
        argv = [runtime.tool_command(tool), *context.params.get("args", [])]

        logger.debug("Running: %s", " ".join(argv))
        start = time.monotonic()

        try:
            result = subprocess.run(
                argv,
                cwd=context.working_dir,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Failed to run command '{tool}': {e}",
                metadata={"argv": argv},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        stdout = result.stdout.strip()
        stderr = result.stderr.strip()

        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                action_id=context.action.id,
                output=stdout,
                duration_ms=elapsed_ms,
                metadata={"argv": argv, "return_code": 0, "stderr": stderr},
            )

        return Receipt.failure(
            adapter=self.name,
            action_id=context.action.id,
            error=(
                f"Command '{tool}' exited with error code {result.returncode}"
                + (f": {stderr}" if stderr else "")
            ),
            duration_ms=elapsed_ms,
            metadata={"argv": argv, "return_code": result.returncode, "stdout": stdout},
        )
