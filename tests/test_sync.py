"""Tests for the incremental sync (ccsync sync)."""

import json

from ccsync.models import SyncReport
from ccsync.sync import (
    copy_if_changed,
    extract_alias_block,
    format_plugin_list,
    run_sync,
    trees_differ,
)


def _quiet(line):
    pass


class TestCopyIfChanged:

    def test_new_file(self, tmp_path):
        source = tmp_path / "a.txt"
        source.write_text("hello")
        report = SyncReport()

        copy_if_changed(source, tmp_path / "out" / "a.txt", "a.txt", report)

        assert [(c.kind, c.name) for c in report.changes] == [("new", "a.txt")]
        assert (tmp_path / "out" / "a.txt").read_text() == "hello"

    def test_unchanged_file_is_not_reported(self, tmp_path):
        source = tmp_path / "a.txt"
        source.write_text("same")
        dest = tmp_path / "b.txt"
        dest.write_text("same")
        report = SyncReport()

        copy_if_changed(source, dest, "a.txt", report)

        assert report.change_count == 0

    def test_changed_file_is_updated(self, tmp_path):
        source = tmp_path / "a.txt"
        source.write_text("new")
        dest = tmp_path / "b.txt"
        dest.write_text("old")
        report = SyncReport()

        copy_if_changed(source, dest, "a.txt", report)

        assert report.changes[0].kind == "updated"
        assert dest.read_text() == "new"

    def test_missing_source_is_ignored(self, tmp_path):
        report = SyncReport()
        copy_if_changed(tmp_path / "missing", tmp_path / "dest", "missing", report)
        assert report.change_count == 0
        assert not (tmp_path / "dest").exists()

    def test_changed_directory_is_replaced(self, tmp_path):
        source = tmp_path / "skill"
        (source / "refs").mkdir(parents=True)
        (source / "refs" / "notes.md").write_text("v2")
        dest = tmp_path / "dest"
        (dest / "refs").mkdir(parents=True)
        (dest / "refs" / "notes.md").write_text("v1")
        (dest / "extra.md").write_text("gone soon")
        report = SyncReport()

        copy_if_changed(source, dest, "skills/skill", report)

        assert report.changes[0].kind == "updated"
        assert (dest / "refs" / "notes.md").read_text() == "v2"
        assert not (dest / "extra.md").exists()


class TestTreesDiffer:

    def test_identical_trees(self, tmp_path):
        for root in ("a", "b"):
            (tmp_path / root / "sub").mkdir(parents=True)
            (tmp_path / root / "sub" / "f.txt").write_text("x")
        assert not trees_differ(tmp_path / "a", tmp_path / "b")

    def test_same_size_different_content(self, tmp_path):
        for root, text in (("a", "abc"), ("b", "abd")):
            (tmp_path / root).mkdir()
            (tmp_path / root / "f.txt").write_text(text)
        assert trees_differ(tmp_path / "a", tmp_path / "b")

    def test_extra_file(self, tmp_path):
        (tmp_path / "a").mkdir()
        (tmp_path / "b").mkdir()
        (tmp_path / "b" / "extra").write_text("")
        assert trees_differ(tmp_path / "a", tmp_path / "b")


class TestHelpers:

    def test_format_plugin_list_uses_first_scope(self):
        plugins = {
            "dx@ykdojo": [{"scope": "project"}, {"scope": "user"}],
            "cc-safe@market": [{}],
            "odd": "not-a-list",
        }
        assert format_plugin_list(plugins) == "dx@ykdojo@project\ncc-safe@market@user\nodd@user\n"

    def test_format_plugin_list_empty(self):
        assert format_plugin_list({}) == ""

    def test_extract_alias_block_stops_at_blank_line(self):
        rc = (
            "export PATH=$PATH:~/bin\n"
            "# Claude Code aliases\n"
            "alias c=claude\n"
            "alias cr='claude --resume'\n"
            "\n"
            "alias ll='ls -la'\n"
        )
        assert extract_alias_block(rc) == "# Claude Code aliases\nalias c=claude\nalias cr='claude --resume'\n\n"

    def test_extract_alias_block_without_header(self):
        assert extract_alias_block("alias c=claude\n") == ""

    def test_extract_alias_block_collects_every_block(self):
        rc = (
            "## Claude Code aliases (work)\n"
            "alias c=claude\n"
            "\n"
            "export EDITOR=vim\n"
            "# Claude Code aliases\n"
            "alias cr='claude --resume'\n"
            "\n"
            "alias ll='ls -la'\n"
        )
        assert extract_alias_block(rc) == (
            "## Claude Code aliases (work)\nalias c=claude\n\n"
            "# Claude Code aliases\nalias cr='claude --resume'\n\n"
        )

    def test_extract_alias_block_runs_to_end_without_blank_line(self):
        rc = "# Claude Code aliases\nalias c=claude\n"
        assert extract_alias_block(rc) == rc


class TestRunSync:

    def test_first_sync_reports_everything_new(self, settings):
        claude = settings.claude_dir
        (claude / "settings.json").write_text("{}")
        (claude / "scripts").mkdir()
        (claude / "scripts" / "auto-handoff.sh").write_text("#!/bin/bash")
        (claude / "skills" / "tensor-shapes").mkdir(parents=True)
        (claude / "skills" / "tensor-shapes" / "SKILL.md").write_text("shapes")
        (claude / "hooks").mkdir()
        (claude / "hooks" / "precompact.sh").write_text("#!/bin/bash")
        settings.claude_json.write_text('{"mcpServers": {}}')

        report = run_sync(settings, echo=_quiet)

        names = {c.name for c in report.changes}
        assert names == {
            "settings.json",
            "scripts/auto-handoff.sh",
            "skills/tensor-shapes",
            "hooks/precompact.sh",
            ".claude.json",
        }
        assert all(c.kind == "new" for c in report.changes)
        assert "Total skills: 1" in report.notes

    def test_dot_entries_are_not_synced(self, settings):
        claude = settings.claude_dir
        (claude / "scripts").mkdir()
        (claude / "scripts" / ".DS_Store").write_text("finder")
        (claude / "scripts" / "statusline.sh").write_text("#!/bin/bash")
        (claude / "skills" / ".git").mkdir(parents=True)
        (claude / "skills" / "notes").mkdir()
        (claude / "hooks").mkdir()
        (claude / "hooks" / ".hidden").write_text("x")

        report = run_sync(settings, echo=_quiet)

        names = {c.name for c in report.changes}
        assert names == {"scripts/statusline.sh", "skills/notes"}
        assert not (settings.content_dir / "skills" / ".git").exists()
        assert "Total skills: 1" in report.notes

    def test_dot_entries_in_sync_dir_are_not_deleted(self, settings):
        (settings.claude_dir / "scripts").mkdir()
        dest = settings.content_dir / "scripts"
        dest.mkdir(parents=True)
        (dest / ".gitkeep").write_text("")

        report = run_sync(settings, echo=_quiet)

        assert report.change_count == 0
        assert (dest / ".gitkeep").exists()

    def test_second_sync_without_changes(self, settings):
        (settings.claude_dir / "settings.json").write_text("{}")
        run_sync(settings, echo=_quiet)

        report = run_sync(settings, echo=_quiet)

        assert report.change_count == 0

    def test_deleted_script_and_skill_are_removed(self, settings):
        claude = settings.claude_dir
        (claude / "scripts").mkdir()
        (claude / "scripts" / "old.sh").write_text("x")
        (claude / "skills" / "old-skill").mkdir(parents=True)
        run_sync(settings, echo=_quiet)

        (claude / "scripts" / "old.sh").unlink()
        (claude / "skills" / "old-skill").rmdir()
        report = run_sync(settings, echo=_quiet)

        deleted = {c.name for c in report.changes if c.kind == "deleted"}
        assert deleted == {"scripts/old.sh", "skills/old-skill"}
        assert not (settings.content_dir / "scripts" / "old.sh").exists()
        assert not (settings.content_dir / "skills" / "old-skill").exists()

    def test_hooks_are_never_deleted(self, settings):
        (settings.claude_dir / "hooks").mkdir()
        kept = settings.content_dir / "hooks" / "kept.sh"
        kept.parent.mkdir(parents=True)
        kept.write_text("x")

        report = run_sync(settings, echo=_quiet)

        assert kept.exists()
        assert report.change_count == 0

    def test_plugins(self, settings):
        plugins_dir = settings.claude_dir / "plugins"
        plugins_dir.mkdir()
        (plugins_dir / "installed_plugins.json").write_text(json.dumps({
            "version": 1,
            "plugins": {"dx@ykdojo": [{"scope": "user"}]},
        }))
        (plugins_dir / "marketplaces" / "ykdojo").mkdir(parents=True)

        report = run_sync(settings, echo=_quiet)

        names = {c.name for c in report.changes}
        assert "plugins/manifests/installed_plugins.json" in names
        assert "plugins.txt" in names
        assert (settings.config_dir / "plugins.txt").read_text() == "dx@ykdojo@user\n"
        assert "Total plugins: 1" in report.notes
        assert "Total marketplaces: 1" in report.notes

        again = run_sync(settings, echo=_quiet)
        assert again.change_count == 0

    def test_shell_aliases(self, settings):
        settings.shell_rc.write_text("# Claude Code aliases\nalias c=claude\n\nexport X=1\n")

        report = run_sync(settings, echo=_quiet)

        assert [c.name for c in report.changes] == ["zshrc-aliases.txt"]
        assert (settings.config_dir / "zshrc-aliases.txt").read_text() == "# Claude Code aliases\nalias c=claude\n\n"

    def test_progress_lines(self, settings):
        (settings.claude_dir / "settings.json").write_text("{}")
        lines = []

        run_sync(settings, echo=lines.append)

        assert lines[0] == "[1/8] Checking settings.json..."
        assert "  [NEW] settings.json" in lines
