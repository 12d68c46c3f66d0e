"""
Tests for runtime enablement — enable/disable links and their use cases.
"""

import textwrap
from pathlib import Path

import pytest

from avocadoctl.core.models.config import Config
from avocadoctl.core.services.runtime_links import (
    FALLBACK_RUNTIME_VERSION,
    RuntimeLinkManager,
    resolve_runtime_version,
)
from avocadoctl.core.use_cases.runtime import disable_extensions, enable_extensions


@pytest.fixture
def available(config: Config) -> Path:
    """ext1-1.0.0 as a directory, ext2/ext3 as .raw images."""
    ext_dir = config.get_extensions_dir()
    (ext_dir / "ext1-1.0.0").mkdir(parents=True)
    (ext_dir / "ext2-1.0.0.raw").write_bytes(b"mock raw data")
    (ext_dir / "ext3-1.0.0.raw").write_bytes(b"mock raw data")
    return ext_dir


def _links(directory: Path) -> list[str]:
    if not directory.is_dir():
        return []
    return sorted(p.name for p in directory.iterdir() if p.is_symlink())


ALL = ["ext1-1.0.0", "ext2-1.0.0", "ext3-1.0.0"]


# ── Version resolution ───────────────────────────────────────────────


class TestResolveVersion:
    def test_requested_wins(self, config):
        assert resolve_runtime_version(config, "2.0.0") == "2.0.0"

    def test_config_version(self):
        config = Config.model_validate({"avocado": {"runtime": {"version": "1.4"}}})
        assert resolve_runtime_version(config) == "1.4"

    def test_os_release_version_id(self, tmp_path: Path):
        os_release = tmp_path / "os-release"
        os_release.write_text('NAME="Avocado Linux"\nVERSION_ID="3.1.0"\n')
        config = Config.model_validate(
            {"avocado": {"runtime": {"os_release": str(os_release)}}}
        )
        assert resolve_runtime_version(config) == "3.1.0"

    def test_fallback_without_os_release(self, tmp_path: Path):
        config = Config.model_validate(
            {"avocado": {"runtime": {"os_release": str(tmp_path / "missing")}}}
        )
        assert resolve_runtime_version(config) == FALLBACK_RUNTIME_VERSION


# ── Enable ───────────────────────────────────────────────────────────


class TestEnable:
    def test_links_directories_and_images(self, config, registry, tools, available):
        report = RuntimeLinkManager(config, registry).enable(ALL, "2.0.0")

        assert report.ok
        assert report.summary() == "3 extension(s) enabled for runtime 2.0.0"
        runtime_dir = config.get_runtime_dir() / "2.0.0"
        assert _links(runtime_dir) == ["ext1-1.0.0", "ext2-1.0.0.raw", "ext3-1.0.0.raw"]
        assert (runtime_dir / "ext1-1.0.0").resolve() == (available / "ext1-1.0.0").resolve()
        assert report.synced
        assert tools.action_ids == ["sync"]

    def test_missing_extension_isolated(self, config, registry, tools, available):
        report = RuntimeLinkManager(config, registry).enable(
            ["ext1-1.0.0", "nonexistent-ext"], "2.0.0"
        )

        assert not report.ok
        assert [o.extension for o in report.failures] == ["nonexistent-ext"]
        assert report.failures[0].error.startswith("Extension 'nonexistent-ext' not found")
        assert _links(config.get_runtime_dir() / "2.0.0") == ["ext1-1.0.0"]
        assert tools.action_ids == ["sync"]

    def test_enable_twice_keeps_one_link(self, config, registry, available):
        manager = RuntimeLinkManager(config, registry)
        manager.enable(["ext1-1.0.0"], "2.0.0")

        report = manager.enable(["ext1-1.0.0"], "2.0.0")

        assert report.ok
        assert report.execution.receipts_for("enable:ext1-1.0.0")[0].metadata["replaced"]
        assert _links(config.get_runtime_dir() / "2.0.0") == ["ext1-1.0.0"]

    def test_image_replacing_directory_drops_old_link(self, config, registry, available):
        manager = RuntimeLinkManager(config, registry)
        manager.enable(["ext1-1.0.0"], "2.0.0")
        (available / "ext1-1.0.0").rmdir()
        (available / "ext1-1.0.0.raw").write_bytes(b"image")

        manager.enable(["ext1-1.0.0"], "2.0.0")

        assert _links(config.get_runtime_dir() / "2.0.0") == ["ext1-1.0.0.raw"]

    def test_invalid_names_rejected(self, config, registry, available, tmp_path: Path):
        report = RuntimeLinkManager(config, registry).enable(["../x", "ext1-1.0.0"], "2.0.0")

        assert [o.extension for o in report.failures] == ["../x"]
        assert report.outcomes[1].ok
        assert not (config.get_runtime_dir() / "x").exists()

    def test_invalid_version_does_nothing(self, config, registry, tools, available):
        report = RuntimeLinkManager(config, registry).enable(["ext1-1.0.0"], "../2.0.0")

        assert not report.ok
        assert report.execution.error == "Invalid runtime version '../2.0.0'"
        assert report.outcomes == []
        assert not config.get_runtime_dir().exists()
        assert tools.action_ids == []

    def test_no_sync_when_nothing_changed(self, config, registry, tools, available):
        report = RuntimeLinkManager(config, registry).enable(["nonexistent-ext"], "2.0.0")

        assert not report.synced
        assert tools.action_ids == []

    def test_sync_failure_is_a_warning(self, config, registry, tools, available):
        tools.set_failure("sync", "EIO")

        report = RuntimeLinkManager(config, registry).enable(["ext1-1.0.0"], "2.0.0")

        assert report.ok
        assert not report.synced
        assert "EIO" in report.execution.warnings[0]


# ── Disable ──────────────────────────────────────────────────────────


class TestDisable:
    def test_disable_some(self, config, registry, tools, available):
        manager = RuntimeLinkManager(config, registry)
        manager.enable(ALL, "2.0.0")
        tools.reset()

        report = manager.disable(["ext1-1.0.0", "ext2-1.0.0"], "2.0.0")

        assert report.ok
        assert report.summary() == "2 extension(s) disabled for runtime 2.0.0"
        assert _links(config.get_runtime_dir() / "2.0.0") == ["ext3-1.0.0.raw"]
        # the extensions themselves stay in place
        assert (available / "ext1-1.0.0").is_dir()
        assert (available / "ext2-1.0.0.raw").is_file()
        assert tools.action_ids == ["sync"]

    def test_disable_all(self, config, registry, available):
        manager = RuntimeLinkManager(config, registry)
        manager.enable(ALL, "2.0.0")

        report = manager.disable([], "2.0.0", all_extensions=True)

        assert report.ok
        assert report.all_extensions
        assert [o.extension for o in report.outcomes] == ALL
        assert _links(config.get_runtime_dir() / "2.0.0") == []
        assert report.synced

    def test_disable_all_without_runtime_dir(self, config, registry, tools):
        report = RuntimeLinkManager(config, registry).disable([], "9.9", all_extensions=True)

        assert report.ok
        assert report.outcomes == []
        assert tools.action_ids == []

    def test_not_enabled(self, config, registry, available):
        manager = RuntimeLinkManager(config, registry)
        manager.enable(["ext1-1.0.0"], "2.0.0")

        report = manager.disable(["nonexistent-ext"], "2.0.0")

        assert not report.ok
        assert report.failures[0].error == (
            "Extension 'nonexistent-ext' is not enabled for runtime 2.0.0"
        )
        assert _links(config.get_runtime_dir() / "2.0.0") == ["ext1-1.0.0"]

    def test_dangling_link_removed(self, config, registry, available):
        manager = RuntimeLinkManager(config, registry)
        manager.enable(["ext1-1.0.0"], "2.0.0")
        (available / "ext1-1.0.0").rmdir()

        report = manager.disable(["ext1-1.0.0"], "2.0.0")

        assert report.ok
        assert _links(config.get_runtime_dir() / "2.0.0") == []

    def test_other_runtime_untouched(self, config, registry, available):
        manager = RuntimeLinkManager(config, registry)
        manager.enable(["ext1-1.0.0"], "1.0.0")
        manager.enable(["ext1-1.0.0"], "2.0.0")

        manager.disable(["ext1-1.0.0"], "2.0.0")

        assert _links(config.get_runtime_dir() / "1.0.0") == ["ext1-1.0.0"]
        assert _links(config.get_runtime_dir() / "2.0.0") == []


# ── Use cases ────────────────────────────────────────────────────────


def _config_file(tmp_path: Path, os_release: Path) -> Path:
    path = tmp_path / "avocadoctl.yml"
    path.write_text(textwrap.dedent(f"""\
        avocado:
          ext:
            dir: {tmp_path / "extensions"}
          runtime:
            dir: {tmp_path / "runtime"}
            os_release: {os_release}
    """))
    return path


class TestRuntimeUseCases:
    def test_enable_default_runtime_from_os_release(self, tmp_path, registry, available):
        os_release = tmp_path / "os-release"
        os_release.write_text("ID=avocado\nVERSION_ID=1.2.3\n")

        result = enable_extensions(
            ["ext1-1.0.0"], config_path=_config_file(tmp_path, os_release), registry=registry
        )

        assert result.ok
        assert result.report.version == "1.2.3"
        assert _links(tmp_path / "runtime" / "1.2.3") == ["ext1-1.0.0"]

    def test_partial_failure_not_ok(self, tmp_path, registry, available):
        result = enable_extensions(
            ["ext1-1.0.0", "nonexistent-ext"],
            runtime="2.0.0",
            config_path=_config_file(tmp_path, tmp_path / "missing"),
            registry=registry,
        )

        assert not result.ok
        assert result.error is None
        assert result.to_dict()["report"]["summary"] == "1 extension(s) enabled for runtime 2.0.0"

    def test_disable_requires_names_or_all(self, tmp_path, registry):
        result = disable_extensions([], runtime="2.0.0", registry=registry)

        assert not result.ok
        assert "--all" in result.error
        assert result.report is None

    def test_config_error(self, tmp_path, registry):
        bad = tmp_path / "bad.yml"
        bad.write_text("avocado: [unclosed\n")

        result = enable_extensions(["ext1-1.0.0"], config_path=bad, registry=registry)

        assert not result.ok
        assert "Invalid YAML" in result.error
