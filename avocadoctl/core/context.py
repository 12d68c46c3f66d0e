"""
Process context — environment-derived runtime switches.

avocadoctl keeps no in-process state between invocations. The few
process-wide switches it has are read from the environment on every
call, so tests can flip them with ``monkeypatch.setenv``:

    - AVOCADO_TEST_MODE:  external tools are invoked as ``mock-<tool>``
    - TMPDIR:             scratch root used by test mode
"""

from __future__ import annotations

import os
from pathlib import Path

TEST_MODE_ENV = "AVOCADO_TEST_MODE"
MOCK_PREFIX = "mock-"


def is_test_mode() -> bool:
    """Whether AVOCADO_TEST_MODE is set (to anything)."""
    return TEST_MODE_ENV in os.environ


def tool_command(name: str) -> str:
    """Executable name for an external tool, honouring test mode."""
    return f"{MOCK_PREFIX}{name}" if is_test_mode() else name


def scratch_root() -> Path:
    """$TMPDIR, or /tmp when unset."""
    return Path(os.environ.get("TMPDIR") or "/tmp")
