"""
Configuration model — the ``avocado`` section of avocadoctl.yml.

Every path accessor applies the same precedence: environment variable,
then config file, then built-in default. Mutability values are
validated when read, not when loaded, so a bad value only breaks the
operations that need it.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from avocadoctl.core import context

DEFAULT_EXTENSIONS_DIR = "/var/lib/avocado/extensions"
DEFAULT_RELEASE_DIR = "/usr/lib/extension-release.d"
DEFAULT_CONFEXT_RELEASE_DIR = "/etc/extension-release.d"
DEFAULT_DROPIN_DIR = "/run/systemd/system"
DEFAULT_RUNTIME_DIR = "/var/lib/avocado/runtime"
DEFAULT_OS_RELEASE = "/etc/os-release"
DEFAULT_HITL_PORT = 12049

MUTABLE_VALUES = ("no", "auto", "yes", "import", "ephemeral", "ephemeral-import")

ENV_EXTENSIONS_PATH = "AVOCADO_EXTENSIONS_PATH"
ENV_RELEASE_DIR = "AVOCADO_EXTENSION_RELEASE_DIR"
ENV_CONFEXT_RELEASE_DIR = "AVOCADO_CONFEXT_RELEASE_DIR"
ENV_SYSTEMD_DIR = "AVOCADO_SYSTEMD_DIR"
ENV_RUNTIME_DIR = "AVOCADO_RUNTIME_DIR"


class ConfigError(Exception):
    """Raised when avocadoctl configuration is invalid or unreadable."""


class ExtConfig(BaseModel):
    """Extension settings (``avocado.ext``)."""

    dir: str = DEFAULT_EXTENSIONS_DIR
    sysext_mutable: str | None = None
    confext_mutable: str | None = None
    mutable: str | None = None          # legacy, applies to both hierarchies
    release_dir: str = DEFAULT_RELEASE_DIR
    confext_release_dir: str = DEFAULT_CONFEXT_RELEASE_DIR


class HitlConfig(BaseModel):
    """Hardware-in-the-loop settings (``avocado.hitl``)."""

    server_port: int = DEFAULT_HITL_PORT
    dropin_dir: str | None = None


class RuntimeConfig(BaseModel):
    """Runtime enablement settings (``avocado.runtime``)."""

    dir: str | None = None
    version: str | None = None          # default: VERSION_ID of os_release
    os_release: str = DEFAULT_OS_RELEASE


class AvocadoConfig(BaseModel):
    ext: ExtConfig = Field(default_factory=ExtConfig)
    hitl: HitlConfig = Field(default_factory=HitlConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)


class Config(BaseModel):
    """Root configuration object."""

    avocado: AvocadoConfig = Field(default_factory=AvocadoConfig)

    # ── Paths ────────────────────────────────────────────────────

    def get_extensions_dir(self) -> Path:
        """Extensions path: $AVOCADO_EXTENSIONS_PATH > config > default."""
        return Path(os.environ.get(ENV_EXTENSIONS_PATH) or self.avocado.ext.dir)

    def get_release_dir(self) -> Path:
        return Path(os.environ.get(ENV_RELEASE_DIR) or self.avocado.ext.release_dir)

    def get_confext_release_dir(self) -> Path:
        return Path(
            os.environ.get(ENV_CONFEXT_RELEASE_DIR) or self.avocado.ext.confext_release_dir
        )

    def get_release_dirs(self) -> list[tuple[Path, Literal["sysext", "confext"]]]:
        """Release-metadata directories in scan order (sysext first)."""
        return [
            (self.get_release_dir(), "sysext"),
            (self.get_confext_release_dir(), "confext"),
        ]

    def get_dropin_dir(self) -> Path:
        """Root under which ``<unit>.d/`` drop-in directories are written."""
        env = os.environ.get(ENV_SYSTEMD_DIR)
        if env:
            return Path(env)
        if self.avocado.hitl.dropin_dir:
            return Path(self.avocado.hitl.dropin_dir)
        if context.is_test_mode():
            return context.scratch_root() / "run" / "systemd" / "system"
        return Path(DEFAULT_DROPIN_DIR)

    def get_runtime_dir(self) -> Path:
        """Root holding one directory of extension links per runtime version."""
        env = os.environ.get(ENV_RUNTIME_DIR)
        if env:
            return Path(env)
        if self.avocado.runtime.dir:
            return Path(self.avocado.runtime.dir)
        if context.is_test_mode():
            return context.scratch_root() / "avocado" / "runtime"
        return Path(DEFAULT_RUNTIME_DIR)

    # ── Mutability ───────────────────────────────────────────────

    def get_sysext_mutable(self) -> str:
        """sysext_mutable > legacy mutable > ephemeral."""
        ext = self.avocado.ext
        return _validate_mutable(ext.sysext_mutable or ext.mutable or "ephemeral")

    def get_confext_mutable(self) -> str:
        """confext_mutable > legacy mutable > ephemeral."""
        ext = self.avocado.ext
        return _validate_mutable(ext.confext_mutable or ext.mutable or "ephemeral")


def _validate_mutable(value: str) -> str:
    if value not in MUTABLE_VALUES:
        raise ConfigError(
            f"Invalid mutable value '{value}'. Must be one of: {', '.join(MUTABLE_VALUES)}"
        )
    return value
