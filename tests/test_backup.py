"""Tests for the full backup (ccsync backup)."""

import os

import pytest

from ccsync.backup import backup_file, backup_skills, backup_tree, run_backup


def _populate(claude_dir):
    (claude_dir / "settings.json").write_text('{"theme": "dark"}\n')
    (claude_dir / "scripts").mkdir()
    (claude_dir / "scripts" / "context-bar.sh").write_text("#!/bin/bash\necho bar\n")
    (claude_dir / "hooks").mkdir()
    (claude_dir / "hooks" / "auto-handoff.sh").write_text("#!/bin/bash\n")
    skill = claude_dir / "skills" / "ffmpeg-loudnorm"
    skill.mkdir(parents=True)
    (skill / "SKILL.md").write_text("# ffmpeg loudnorm\n")


class TestBackupFile:

    def test_copy_is_byte_identical(self, tmp_path):
        source = tmp_path / "settings.json"
        source.write_bytes(b'{"a": 1}\n\x00\xff')
        dest = tmp_path / "out" / "settings.json"

        result = backup_file(source, dest, "settings.json")

        assert result.status == "updated"
        assert dest.read_bytes() == source.read_bytes()

    def test_symlink_source_is_skipped(self, tmp_path):
        real = tmp_path / "real.json"
        real.write_text("{}")
        link = tmp_path / "settings.json"
        link.symlink_to(real)
        dest = tmp_path / "out" / "settings.json"

        result = backup_file(link, dest, "settings.json")

        assert result.status == "skipped_symlink"
        assert "symlink" in result.detail
        assert not dest.exists()

    def test_missing_source(self, tmp_path):
        result = backup_file(tmp_path / "nope.json", tmp_path / "out.json", "settings.json")
        assert result.status == "missing"
        assert result.to_line() == "  ✗ settings.json not found"


class TestBackupTree:

    def test_replaces_destination_contents(self, tmp_path):
        source = tmp_path / "scripts"
        source.mkdir()
        (source / "new.sh").write_text("new")
        dest = tmp_path / "content" / "scripts"
        dest.mkdir(parents=True)
        (dest / "stale.sh").write_text("stale")

        result = backup_tree(source, dest, "scripts")

        assert result.status == "updated"
        assert (dest / "new.sh").read_text() == "new"
        assert not (dest / "stale.sh").exists()

    def test_top_level_dot_entries_are_left_out(self, tmp_path):
        source = tmp_path / "scripts"
        (source / "lib").mkdir(parents=True)
        (source / ".DS_Store").write_text("finder")
        (source / "lib" / ".env.example").write_text("KEY=")
        (source / "run.sh").write_text("run")
        dest = tmp_path / "content" / "scripts"

        backup_tree(source, dest, "scripts")

        assert sorted(p.name for p in dest.iterdir()) == ["lib", "run.sh"]
        assert (dest / "lib" / ".env.example").exists()

    def test_no_staging_directories_left_behind(self, tmp_path):
        source = tmp_path / "hooks"
        source.mkdir()
        (source / "a.sh").write_text("a")
        dest = tmp_path / "content" / "hooks"

        backup_tree(source, dest, "hooks")

        assert sorted(p.name for p in dest.parent.iterdir()) == ["hooks"]

    def test_symlinked_directory_is_skipped(self, tmp_path):
        real = tmp_path / "real-scripts"
        real.mkdir()
        link = tmp_path / "scripts"
        link.symlink_to(real, target_is_directory=True)

        result = backup_tree(link, tmp_path / "dest", "scripts")

        assert result.status == "skipped_symlink"
        assert not (tmp_path / "dest").exists()

    def test_missing_directory(self, tmp_path):
        result = backup_tree(tmp_path / "hooks", tmp_path / "dest", "hooks")
        assert result.status == "missing"
        assert result.detail == "hooks/ not found"


class TestBackupSkills:

    def test_copies_real_skills_and_skips_symlinked_ones(self, tmp_path):
        source = tmp_path / "skills"
        (source / "tensor-shapes").mkdir(parents=True)
        (source / "tensor-shapes" / "SKILL.md").write_text("shapes")
        shared = tmp_path / "agents" / "shared-skill"
        shared.mkdir(parents=True)
        (source / "shared-skill").symlink_to(shared, target_is_directory=True)
        dest = tmp_path / "content" / "skills"

        result, copied = backup_skills(source, dest)

        assert result.status == "updated"
        assert copied == ["tensor-shapes"]
        assert (dest / "tensor-shapes" / "SKILL.md").read_text() == "shapes"
        assert not (dest / "shared-skill").exists()

    def test_dot_directories_are_skipped(self, tmp_path):
        source = tmp_path / "skills"
        (source / ".git").mkdir(parents=True)
        (source / "review").mkdir()
        dest = tmp_path / "content" / "skills"

        _, copied = backup_skills(source, dest)

        assert copied == ["review"]
        assert not (dest / ".git").exists()

    def test_keeps_skills_without_source(self, tmp_path):
        source = tmp_path / "skills"
        source.mkdir()
        dest = tmp_path / "content" / "skills"
        (dest / "old-skill").mkdir(parents=True)

        backup_skills(source, dest)

        assert (dest / "old-skill").is_dir()

    def test_replaces_existing_skill(self, tmp_path):
        source = tmp_path / "skills" / "migration"
        source.mkdir(parents=True)
        (source / "SKILL.md").write_text("v2")
        dest = tmp_path / "content" / "skills"
        (dest / "migration").mkdir(parents=True)
        (dest / "migration" / "removed.md").write_text("old")

        backup_skills(tmp_path / "skills", dest)

        assert (dest / "migration" / "SKILL.md").read_text() == "v2"
        assert not (dest / "migration" / "removed.md").exists()


class TestRunBackup:

    def test_full_backup_layout(self, settings):
        _populate(settings.claude_dir)
        lines = []

        report = run_backup(settings, echo=lines.append)

        assert report.ok
        assert [s.status for s in report.steps] == ["updated"] * 4
        assert (settings.config_dir / "settings.json").read_text() == '{"theme": "dark"}\n'
        assert (settings.content_dir / "scripts" / "context-bar.sh").exists()
        assert (settings.content_dir / "hooks" / "auto-handoff.sh").exists()
        assert (settings.content_dir / "skills" / "ffmpeg-loudnorm" / "SKILL.md").exists()
        assert lines[0] == "[1/4] Updating settings.json..."
        assert "  ✓ Updated skill: ffmpeg-loudnorm" in lines

    def test_empty_claude_dir_reports_missing(self, settings):
        report = run_backup(settings, echo=lambda line: None)

        assert report.ok
        assert [s.status for s in report.steps] == ["missing"] * 4
        # Destination skeleton is still created
        for sub in ("scripts", "skills", "hooks"):
            assert (settings.content_dir / sub).is_dir()

    def test_symlinked_settings_after_install(self, settings):
        _populate(settings.claude_dir)
        repo_copy = settings.config_dir / "settings.json"
        repo_copy.parent.mkdir(parents=True)
        repo_copy.write_text('{"theme": "light"}\n')
        (settings.claude_dir / "settings.json").unlink()
        (settings.claude_dir / "settings.json").symlink_to(repo_copy)

        report = run_backup(settings, echo=lambda line: None)

        assert report.steps[0].status == "skipped_symlink"
        assert repo_copy.read_text() == '{"theme": "light"}\n'

    @pytest.mark.skipif(os.geteuid() == 0, reason="root ignores file permissions")
    def test_stops_at_first_failure(self, settings):
        _populate(settings.claude_dir)
        unreadable = settings.claude_dir / "scripts" / "secret.sh"
        unreadable.write_text("x")
        unreadable.chmod(0o000)
        try:
            report = run_backup(settings, echo=lambda line: None)
        finally:
            unreadable.chmod(0o644)

        assert not report.ok
        assert [s.name for s in report.steps] == ["settings.json", "scripts"]
        assert report.steps[-1].status == "failed"
