"""
Tests for the lifecycle orchestrator — merge, unmerge and refresh ordering.

External tools and directive commands go through MockAdapters registered
as 'tool' and 'shell', so every invocation is observable in order.
"""

from pathlib import Path

from avocadoctl.adapters.mock import MockAdapter
from avocadoctl.adapters.registry import AdapterRegistry
from avocadoctl.core.engine.lifecycle import ExtensionLifecycle
from avocadoctl.core.models.config import Config


def _argv(mock: MockAdapter) -> list[list[str]]:
    return [c.action.params["argv"] for c in mock.call_log]


def _commands(mock: MockAdapter) -> list[str]:
    return [c.action.params["command"] for c in mock.call_log]


def _order(report) -> list[str]:
    return [r.action_id for r in report.receipts]


# ── Merge ────────────────────────────────────────────────────────────


class TestMerge:
    def test_primitives_without_directives(self, config, registry, tools, shell, release_dirs):
        report = ExtensionLifecycle(config, registry).merge()

        assert report.ok
        assert _argv(tools) == [
            ["systemd-sysext", "merge", "--mutable=ephemeral", "--json=short"],
            ["systemd-confext", "merge", "--mutable=ephemeral", "--json=short"],
        ]
        assert shell.call_count == 0

    def test_mutability_from_config(self, registry, tools, release_dirs):
        config = Config.model_validate(
            {"avocado": {"ext": {"sysext_mutable": "yes", "mutable": "import"}}}
        )
        ExtensionLifecycle(config, registry).merge()

        assert _argv(tools)[0][2] == "--mutable=yes"
        assert _argv(tools)[1][2] == "--mutable=import"

    def test_invalid_mutability_aborts_before_merge(self, registry, tools, release_dirs):
        config = Config.model_validate({"avocado": {"ext": {"mutable": "sometimes"}}})
        report = ExtensionLifecycle(config, registry).merge()

        assert not report.ok
        assert report.failed_step == "config"
        assert "Invalid mutable value 'sometimes'" in report.error
        assert tools.call_count == 0

    def test_depmod_once_for_many_declarations(self, config, registry, tools, shell,
                                               release_dir, write_release):
        write_release(release_dir, "a", "AVOCADO_ON_MERGE=depmod\n")
        write_release(release_dir, "b", "AVOCADO_ON_MERGE=depmod\n")
        write_release(release_dir, "c", 'AVOCADO_ON_MERGE="depmod"\n')

        report = ExtensionLifecycle(config, registry).merge()

        assert report.ok
        assert tools.action_ids.count("depmod") == 1
        assert shell.call_count == 0

    def test_no_depmod_without_declaration(self, config, registry, tools,
                                           release_dir, write_release):
        write_release(release_dir, "a", "AVOCADO_ON_MERGE=ldconfig\n")

        ExtensionLifecycle(config, registry).merge()

        assert "depmod" not in tools.action_ids

    def test_modprobe_skipped_without_depmod(self, config, registry, tools,
                                             release_dir, write_release):
        write_release(release_dir, "a", "AVOCADO_MODPROBE=foo\n")

        report = ExtensionLifecycle(config, registry).merge()

        assert report.ok
        assert tools.calls_matching(tool="modprobe") == []

    def test_modprobe_after_depmod(self, config, registry, tools,
                                   release_dir, write_release):
        write_release(release_dir, "a", 'AVOCADO_ON_MERGE=depmod\nAVOCADO_MODPROBE="foo bar"\n')
        write_release(release_dir, "b", "AVOCADO_MODPROBE=bar baz\n")

        ExtensionLifecycle(config, registry).merge()

        assert tools.action_ids == [
            "merge:systemd-sysext",
            "merge:systemd-confext",
            "depmod",
            "modprobe:foo",
            "modprobe:bar",
            "modprobe:baz",
        ]
        assert _argv(tools)[3] == ["modprobe", "foo"]

    def test_commands_run_in_aggregated_order(self, config, registry, shell,
                                              release_dir, write_release):
        write_release(release_dir, "b", "AVOCADO_ON_MERGE=cmd1\n")
        write_release(release_dir, "a", 'AVOCADO_ON_MERGE="cmd2; cmd3"\nAVOCADO_ON_MERGE=cmd1\n')

        report = ExtensionLifecycle(config, registry).merge()

        assert _commands(shell) == ["cmd2; cmd3", "cmd1"]
        assert _order(report)[2:] == ["on-merge:0", "on-merge:1"]

    def test_commands_run_before_depmod(self, config, registry, release_dir, write_release):
        write_release(release_dir, "a", "AVOCADO_ON_MERGE=depmod\nAVOCADO_ON_MERGE=ldconfig\n")

        report = ExtensionLifecycle(config, registry).merge()

        assert _order(report) == [
            "merge:systemd-sysext",
            "merge:systemd-confext",
            "on-merge:0",
            "depmod",
        ]

    def test_confext_release_metadata_is_read(self, config, registry, shell,
                                              release_dirs, write_release):
        _, confext = release_dirs
        write_release(confext, "cfg", "AVOCADO_ON_MERGE=reload-config\n")

        ExtensionLifecycle(config, registry).merge()

        assert _commands(shell) == ["reload-config"]

    def test_command_failure_is_not_fatal(self, config, registry, shell,
                                          release_dir, write_release):
        write_release(release_dir, "a", "AVOCADO_ON_MERGE=false\nAVOCADO_ON_MERGE=true\n")
        shell.set_failure("on-merge:0", "exit 1")

        report = ExtensionLifecycle(config, registry).merge()

        assert report.ok
        assert report.status == "partial"
        assert shell.action_ids == ["on-merge:0", "on-merge:1"]
        assert len(report.warnings) == 1
        assert "false" in report.warnings[0]

    def test_module_load_failure_is_not_fatal(self, config, registry, tools,
                                              release_dir, write_release):
        write_release(release_dir, "a", "AVOCADO_ON_MERGE=depmod\nAVOCADO_MODPROBE=bad good\n")
        tools.set_failure("modprobe:bad", "Module bad not found")

        report = ExtensionLifecycle(config, registry).merge()

        assert report.ok
        assert "modprobe:good" in tools.action_ids
        assert "Module bad not found" in report.warnings[0]

    def test_primitive_failure_is_fatal(self, config, registry, tools, shell,
                                        release_dir, write_release):
        write_release(release_dir, "a", "AVOCADO_ON_MERGE=depmod\nAVOCADO_ON_MERGE=ldconfig\n")
        tools.set_failure("merge:systemd-sysext", "exit 1")

        report = ExtensionLifecycle(config, registry).merge()

        assert not report.ok
        assert report.failed_step == "merge:systemd-sysext"
        assert report.error.startswith("systemd-sysext merge failed")
        assert tools.action_ids == ["merge:systemd-sysext"]
        assert shell.call_count == 0

    def test_depmod_failure_skips_module_loading(self, config, registry, tools,
                                                 release_dir, write_release):
        write_release(release_dir, "a", "AVOCADO_ON_MERGE=depmod\nAVOCADO_MODPROBE=foo\n")
        tools.set_failure("depmod", "exit 1")

        report = ExtensionLifecycle(config, registry).merge()

        assert report.failed_step == "depmod"
        assert tools.calls_matching(tool="modprobe") == []

    def test_json_output_attached_to_receipt(self, config, registry, tools, release_dirs):
        tools.set_output("merge:systemd-sysext", '[{"hierarchy": "/usr"}]')

        report = ExtensionLifecycle(config, registry).merge()

        receipt = report.receipts_for("merge:systemd-sysext")[0]
        assert receipt.metadata["json"] == [{"hierarchy": "/usr"}]


# ── Unmerge ──────────────────────────────────────────────────────────


class TestUnmerge:
    def test_pre_unmerge_commands_before_primitive(self, config, registry,
                                                   release_dir, write_release):
        write_release(release_dir, "a", "AVOCADO_ON_UNMERGE=stop-a\n")
        write_release(release_dir, "b", "AVOCADO_ON_UNMERGE=stop-a\nAVOCADO_ON_UNMERGE=stop-b\n")

        report = ExtensionLifecycle(config, registry).unmerge()

        assert report.ok
        assert _order(report) == [
            "on-unmerge:0",
            "on-unmerge:1",
            "unmerge:systemd-sysext",
            "unmerge:systemd-confext",
            "depmod",
        ]

    def test_depmod_always(self, config, registry, tools, release_dirs):
        ExtensionLifecycle(config, registry).unmerge()

        assert _argv(tools) == [
            ["systemd-sysext", "unmerge", "--json=short"],
            ["systemd-confext", "unmerge", "--json=short"],
            ["depmod"],
        ]

    def test_primitive_failure_skips_depmod(self, config, registry, tools, release_dirs):
        tools.set_failure("unmerge:systemd-confext", "busy")

        report = ExtensionLifecycle(config, registry).unmerge()

        assert report.failed_step == "unmerge:systemd-confext"
        assert "depmod" not in tools.action_ids

    def test_pre_unmerge_failure_is_not_fatal(self, config, registry, tools, shell,
                                              release_dir, write_release):
        write_release(release_dir, "a", "AVOCADO_ON_UNMERGE=false\n")
        shell.set_failure("on-unmerge:0")

        report = ExtensionLifecycle(config, registry).unmerge()

        assert report.ok
        assert "unmerge:systemd-sysext" in tools.action_ids


# ── Refresh ──────────────────────────────────────────────────────────


class TestRefresh:
    def test_single_depmod(self, config, registry, tools, release_dir, write_release):
        write_release(release_dir, "a", "AVOCADO_ON_MERGE=depmod\nAVOCADO_ON_UNMERGE=stop\n")

        report = ExtensionLifecycle(config, registry).refresh()

        assert report.ok
        assert report.operation == "refresh"
        assert tools.action_ids.count("depmod") == 1
        assert _order(report) == [
            "on-unmerge:0",
            "unmerge:systemd-sysext",
            "unmerge:systemd-confext",
            "merge:systemd-sysext",
            "merge:systemd-confext",
            "depmod",
        ]

    def test_no_depmod_when_not_declared(self, config, registry, tools, release_dirs):
        ExtensionLifecycle(config, registry).refresh()

        assert "depmod" not in tools.action_ids

    def test_unmerge_failure_stops_refresh(self, config, registry, tools, release_dirs):
        tools.set_failure("unmerge:systemd-sysext")

        report = ExtensionLifecycle(config, registry).refresh()

        assert not report.ok
        assert tools.action_ids == ["unmerge:systemd-sysext"]


# ── Dry run ──────────────────────────────────────────────────────────


class TestDryRun:
    def test_nothing_executed(self, config, tools, shell, release_dir, write_release):
        write_release(release_dir, "a", "AVOCADO_ON_MERGE=depmod\nAVOCADO_ON_MERGE=ldconfig\n")
        registry = AdapterRegistry(dry_run=True)
        registry.register(tools)
        registry.register(shell)

        report = ExtensionLifecycle(config, registry).merge()

        assert report.ok
        assert tools.call_count == 0
        assert shell.call_count == 0
        assert report.skipped == report.total == 4
        assert report.receipts[0].output.startswith("[dry-run] Would run systemd-sysext merge")
