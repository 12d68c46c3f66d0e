"""
Filesystem adapter — directory and file changes with receipts.

HITL mount points, drop-in fragments and runtime extension links are
created and removed through this adapter so they show up in the run
report and honour dry-run like every other side effect.
"""

from __future__ import annotations

import logging
from pathlib import Path

from avocadoctl.adapters.base import Adapter, ExecutionContext
from avocadoctl.core.models.action import Receipt

logger = logging.getLogger(__name__)

_VALID_OPS = {"mkdir", "write", "remove", "rmdir", "symlink"}


class FilesystemAdapter(Adapter):
    """File and directory operations.

    Action params:
        operation (str): One of 'mkdir', 'write', 'remove', 'rmdir', 'symlink'.
        path (str): Absolute target path (the link itself for 'symlink').
        content (str): Content to write (for 'write').
        target (str): Absolute path the link points to (for 'symlink').

    'rmdir' only removes empty directories and skips otherwise.
    'symlink' replaces an existing link but never a real file or directory.
    """

    @property
    def name(self) -> str:
        return "filesystem"

    def is_available(self) -> bool:
        return True

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.params.get("operation", "")
        if not operation:
            return False, "Missing required param: 'operation'"

        if operation not in _VALID_OPS:
            return False, f"Unknown operation '{operation}'. Valid: {', '.join(sorted(_VALID_OPS))}"

        path = context.params.get("path", "")
        if not path:
            return False, "Missing required param: 'path'"
        if not Path(path).is_absolute():
            return False, f"Path must be absolute: {path}"

        if operation == "write" and "content" not in context.params:
            return False, "Missing required param: 'content' for write operation"

        if operation == "symlink":
            link_target = context.params.get("target", "")
            if not link_target:
                return False, "Missing required param: 'target' for symlink operation"
            if not Path(link_target).is_absolute():
                return False, f"Link target must be absolute: {link_target}"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.params["operation"]
        target = Path(context.params["path"])

        try:
            if operation == "mkdir":
                return self._mkdir(context, target)
            if operation == "write":
                return self._write(context, target)
            if operation == "remove":
                return self._remove(context, target)
            if operation == "symlink":
                return self._symlink(context, target)
            return self._rmdir(context, target)
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Filesystem error: {e}",
                metadata={"operation": operation, "path": str(target)},
            )

    def _mkdir(self, ctx: ExecutionContext, target: Path) -> Receipt:
        existed = target.is_dir()
        target.mkdir(parents=True, exist_ok=True)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Directory already exists: {target}" if existed else f"Created directory: {target}",
            metadata={"path": str(target), "created": not existed},
        )

    def _write(self, ctx: ExecutionContext, target: Path) -> Receipt:
        content = ctx.params["content"]
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Written {len(content)} bytes to {target}",
            metadata={"path": str(target), "size": len(content)},
        )

    def _remove(self, ctx: ExecutionContext, target: Path) -> Receipt:
        if not target.exists() and not target.is_symlink():
            return Receipt.skip(
                adapter=self.name,
                action_id=ctx.action.id,
                reason=f"Not present: {target}",
                metadata={"path": str(target)},
            )
        target.unlink()
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Removed {target}",
            metadata={"path": str(target)},
        )

    def _rmdir(self, ctx: ExecutionContext, target: Path) -> Receipt:
        if not target.is_dir() or any(target.iterdir()):
            return Receipt.skip(
                adapter=self.name,
                action_id=ctx.action.id,
                reason=f"Not an empty directory: {target}",
                metadata={"path": str(target)},
            )
        target.rmdir()
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Removed directory {target}",
            metadata={"path": str(target)},
        )

    def _symlink(self, ctx: ExecutionContext, target: Path) -> Receipt:
        link_target = Path(ctx.params["target"])
        replaced = target.is_symlink()
        if target.exists() and not replaced:
            return Receipt.failure(
                adapter=self.name,
                action_id=ctx.action.id,
                error=f"Refusing to replace non-link {target}",
                metadata={"path": str(target)},
            )
        target.parent.mkdir(parents=True, exist_ok=True)
        if replaced:
            target.unlink()
        target.symlink_to(link_target)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Linked {target} -> {link_target}",
            metadata={"path": str(target), "target": str(link_target), "replaced": replaced},
        )
