"""
Config check use case — validate avocadoctl.yml and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from avocadoctl.core.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from avocadoctl.core.models.config import Config


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    config: Config | None = None
    config_path: Path | None = None
    exists: bool = False
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        data: dict = {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "exists": self.exists,
            "errors": self.errors,
            "warnings": self.warnings,
        }
        if self.config is not None:
            data["extensions_dir"] = str(self.config.get_extensions_dir())
            data["release_dirs"] = [str(d) for d, _ in self.config.get_release_dirs()]
            data["dropin_dir"] = str(self.config.get_dropin_dir())
            data["runtime_dir"] = str(self.config.get_runtime_dir())
            data["hitl_server_port"] = self.config.avocado.hitl.server_port
        return data


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate configuration and report issues.

    Args:
        config_path: Optional explicit path to avocadoctl.yml.

    Returns:
        ConfigCheckResult with validation status and any issues.
    """
    result = ConfigCheckResult(config_path=config_path or DEFAULT_CONFIG_PATH)
    result.exists = result.config_path.exists()

    if not result.exists:
        result.warnings.append(f"No config file at {result.config_path}, using defaults.")

    try:
        config = load_config(result.config_path)
        result.config = config
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    # Mutability is validated lazily at merge time; surface it here
    for getter in (config.get_sysext_mutable, config.get_confext_mutable):
        try:
            getter()
        except ConfigError as e:
            if str(e) not in result.errors:
                result.errors.append(str(e))

    ext = config.avocado.ext
    if ext.mutable and (ext.sysext_mutable or ext.confext_mutable):
        result.warnings.append(
            "Legacy 'mutable' is set together with sysext_mutable/confext_mutable; "
            "the specific options take precedence."
        )

    extensions_dir = config.get_extensions_dir()
    if not extensions_dir.is_dir():
        result.warnings.append(f"Extensions directory does not exist: {extensions_dir}")

    port = config.avocado.hitl.server_port
    if not 0 < port < 65536:
        result.errors.append(f"Invalid HITL server port: {port}")

    result.valid = len(result.errors) == 0
    return result
