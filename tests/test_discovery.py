"""
Tests for extension discovery and merged-status parsing.
"""

import json
import logging
from pathlib import Path

import pytest

from avocadoctl.core.engine.executor import ExecutionReport
from avocadoctl.core.models.extension import Extension, ExtensionRelease
from avocadoctl.core.services.extension_discovery import (
    DiscoveryError,
    discover_releases,
    list_extensions,
)
from avocadoctl.core.services.sysext_status import (
    parse_status_output,
    parse_status_text,
    query_status,
)

# ── Listing ──────────────────────────────────────────────────────────


class TestListExtensions:
    def test_dirs_and_raw_images_sorted(self, tmp_path: Path):
        (tmp_path / "zeta").mkdir()
        (tmp_path / "alpha.raw").write_bytes(b"")
        (tmp_path / "mid").mkdir()
        (tmp_path / "notes.txt").write_text("")

        found = list_extensions(tmp_path)

        assert [e.name for e in found] == ["alpha", "mid", "zeta"]
        assert found[0].image is True
        assert found[1].image is False

    def test_empty(self, tmp_path: Path):
        assert list_extensions(tmp_path) == []

    def test_missing_dir(self, tmp_path: Path):
        with pytest.raises(DiscoveryError, match="Error accessing extensions directory"):
            list_extensions(tmp_path / "nope")

    def test_duplicate_name_prefers_first(self, tmp_path: Path, caplog):
        (tmp_path / "app").mkdir()
        (tmp_path / "app.raw").write_bytes(b"")
        with caplog.at_level(logging.WARNING):
            found = list_extensions(tmp_path)
        assert len(found) == 1
        assert "app" in caplog.text

    def test_from_path(self, tmp_path: Path):
        assert Extension.from_path(tmp_path / "missing.raw") is None


class TestDiscoverReleases:
    def test_both_hierarchies(self, tmp_path: Path, write_release):
        sysext = tmp_path / "sysext"
        confext = tmp_path / "confext"
        write_release(sysext, "b", "ID=x\n")
        write_release(sysext, "a", "ID=x\n")
        write_release(confext, "cfg", "ID=x\n")

        releases = discover_releases([(sysext, "sysext"), (confext, "confext")])

        assert [(r.extension, r.hierarchy) for r in releases] == [
            ("a", "sysext"),
            ("b", "sysext"),
            ("cfg", "confext"),
        ]

    def test_missing_dir_is_empty(self, tmp_path: Path):
        assert discover_releases([(tmp_path / "nope", "sysext")]) == []

    def test_prefix_stripped(self, tmp_path: Path):
        release = ExtensionRelease.from_file(tmp_path / "extension-release.my-ext")
        assert release.extension == "my-ext"


# ── Status ───────────────────────────────────────────────────────────


class TestStatusParsing:
    def test_json(self):
        output = json.dumps([
            {"hierarchy": "/usr", "extensions": ["base", "app"], "since": 1767607200000000},
            {"hierarchy": "/opt", "extensions": "none", "since": 0},
        ])
        entries = parse_status_output(output)

        assert entries[0].hierarchy == "/usr"
        assert entries[0].extensions == ["base", "app"]
        assert entries[0].since == "2026-01-05 10:00:00 UTC"
        assert entries[1].extensions == []
        assert entries[1].since is None

    def test_text_fallback(self):
        output = (
            "HIERARCHY EXTENSIONS SINCE\n"
            "/opt      none       -\n"
            "/usr      base,app   Mon 2026-01-05 10:00:00 UTC\n"
        )
        entries = parse_status_text(output)

        assert [e.hierarchy for e in entries] == ["/opt", "/usr"]
        assert entries[1].extensions == ["base", "app"]
        assert entries[1].since == "Mon 2026-01-05 10:00:00 UTC"

    def test_empty(self):
        assert parse_status_output("  \n") == []


class TestQueryStatus:
    def test_per_scope(self, registry, tools):
        tools.set_output(
            "status:systemd-sysext",
            '[{"hierarchy": "/usr", "extensions": ["app"], "since": 0}]',
        )
        tools.set_failure("status:systemd-confext", "not installed")

        scopes = query_status(registry, ExecutionReport())

        assert [s.scope for s in scopes] == ["sysext", "confext"]
        assert scopes[0].merged[0].extensions == ["app"]
        assert scopes[1].error.startswith("Error getting configuration extensions status")
        assert tools.calls_matching(tool="systemd-sysext")[0].action.params["args"] == [
            "status",
            "--json=short",
        ]
