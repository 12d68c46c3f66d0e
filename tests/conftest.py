"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from avocadoctl.adapters.mock import MockAdapter
from avocadoctl.adapters.registry import AdapterRegistry
from avocadoctl.adapters.shell.filesystem import FilesystemAdapter
from avocadoctl.core.models.config import Config

_AVOCADO_ENV = (
    "AVOCADO_TEST_MODE",
    "AVOCADO_EXTENSIONS_PATH",
    "AVOCADO_EXTENSION_RELEASE_DIR",
    "AVOCADO_CONFEXT_RELEASE_DIR",
    "AVOCADO_SYSTEMD_DIR",
    "AVOCADO_RUNTIME_DIR",
    "AVOCADO_LOG_LEVEL",
    "AVOCADO_LOG_FILE",
    "AVOCADO_LOG_FILE_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the host's AVOCADO_* variables out of every test."""
    for name in _AVOCADO_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def release_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> tuple[Path, Path]:
    """Empty sysext and confext release directories, wired through the env."""
    sysext = tmp_path / "release" / "sysext"
    confext = tmp_path / "release" / "confext"
    sysext.mkdir(parents=True)
    confext.mkdir(parents=True)
    monkeypatch.setenv("AVOCADO_EXTENSION_RELEASE_DIR", str(sysext))
    monkeypatch.setenv("AVOCADO_CONFEXT_RELEASE_DIR", str(confext))
    return sysext, confext


@pytest.fixture
def release_dir(release_dirs: tuple[Path, Path]) -> Path:
    """The sysext release directory."""
    return release_dirs[0]


def _write_release(directory: Path, extension: str, content: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"extension-release.{extension}"
    path.write_text(content)
    return path


@pytest.fixture
def write_release():
    """Helper writing ``extension-release.<extension>`` into a directory."""
    return _write_release


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Config rooted in tmp_path (extensions and drop-ins)."""
    return Config.model_validate({
        "avocado": {
            "ext": {"dir": str(tmp_path / "extensions")},
            "hitl": {"dropin_dir": str(tmp_path / "systemd")},
            "runtime": {"dir": str(tmp_path / "runtime")},
        }
    })


@pytest.fixture
def tools() -> MockAdapter:
    """Records external tool invocations."""
    return MockAdapter(adapter_name="tool")


@pytest.fixture
def shell() -> MockAdapter:
    """Records directive commands."""
    return MockAdapter(adapter_name="shell")


@pytest.fixture
def registry(tools: MockAdapter, shell: MockAdapter) -> AdapterRegistry:
    """Registry with mocked tools/shell and a real filesystem adapter."""
    reg = AdapterRegistry()
    reg.register(tools)
    reg.register(shell)
    reg.register(FilesystemAdapter())
    return reg
