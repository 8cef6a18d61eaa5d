"""Force a full backup of ~/.claude into the sync directory.

Unlike ``ccsync sync`` this does not compare contents: every tracked item is
copied again. Items that are symlinks in ~/.claude are skipped, since they
already point into the sync directory after ``ccsync install``.
"""

import logging
import shutil
import sys
import tempfile
from pathlib import Path

from .models import BackupReport, StepResult
from .settings import Settings, load_settings

logger = logging.getLogger(__name__)

BACKUP_STEPS = ("settings.json", "scripts", "skills", "hooks")


def visible_entries(directory: Path) -> list[Path]:
    """Sorted children of ``directory``, skipping dot-entries such as .DS_Store or .git."""
    return sorted(p for p in directory.iterdir() if not p.name.startswith("."))


def _ignore_top_level_dotfiles(root: Path):
    def ignore(directory, names):
        if Path(directory) != root:
            return []
        return [name for name in names if name.startswith(".")]
    return ignore


def backup_file(source: Path, dest: Path, name: str) -> StepResult:
    """Copy a single regular file unless it is a symlink or missing."""
    if source.is_symlink():
        return StepResult(name=name, status="skipped_symlink",
                          detail=f"{name} is a symlink (skipping - already synced)")
    if not source.is_file():
        return StepResult(name=name, status="missing", detail=f"{name} not found")

    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, dest)
    except OSError as e:
        logger.error(f"Failed to copy {source} -> {dest}: {e}")
        return StepResult(name=name, status="failed", detail=f"Failed to copy {name}: {e}")
    return StepResult(name=name, status="updated", detail=f"Updated {name}")


def replace_tree(source: Path, dest: Path, skip_dotfiles: bool = False) -> None:
    """Replace ``dest`` with a copy of ``source``.

    With ``skip_dotfiles`` the top-level dot-entries of ``source`` are left out.

    The copy is staged in a sibling temp directory first; ``dest`` is only
    removed once the staged copy is complete.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    staging = Path(tempfile.mkdtemp(prefix=f".{dest.name}-", dir=dest.parent))
    try:
        staged = staging / dest.name
        ignore = _ignore_top_level_dotfiles(source) if skip_dotfiles else None
        shutil.copytree(source, staged, symlinks=True, ignore=ignore)
        if dest.exists() or dest.is_symlink():
            if dest.is_dir() and not dest.is_symlink():
                shutil.rmtree(dest)
            else:
                dest.unlink()
        staged.rename(dest)
    finally:
        shutil.rmtree(staging, ignore_errors=True)


def backup_tree(source: Path, dest: Path, name: str) -> StepResult:
    """Replace a whole directory (scripts/, hooks/) with a fresh copy."""
    label = f"{name}/"
    if not source.is_dir():
        return StepResult(name=name, status="missing", detail=f"{label} not found")
    if source.is_symlink():
        return StepResult(name=name, status="skipped_symlink",
                          detail=f"{label} is a symlink (skipping - already synced)")

    try:
        replace_tree(source, dest, skip_dotfiles=True)
    except (OSError, shutil.Error) as e:
        logger.error(f"Failed to copy {source} -> {dest}: {e}")
        return StepResult(name=name, status="failed", detail=f"Failed to copy {label}")
    return StepResult(name=name, status="updated", detail=f"Updated {label}")


def backup_skills(source: Path, dest: Path) -> tuple[StepResult, list[str]]:
    """Copy each real (non-symlink) skill directory, replacing stale copies.

    Skills present only in ``dest`` are left alone.

    Returns:
        The step result and the names of the skills that were copied.
    """
    if not source.is_dir():
        return StepResult(name="skills", status="missing", detail="skills/ not found"), []
    if source.is_symlink():
        return StepResult(name="skills", status="skipped_symlink",
                          detail="skills/ is a symlink (skipping - already synced)"), []

    copied = []
    for skill in visible_entries(source):
        if skill.is_symlink() or not skill.is_dir():
            continue
        try:
            replace_tree(skill, dest / skill.name)
        except (OSError, shutil.Error) as e:
            logger.error(f"Failed to copy skill {skill.name}: {e}")
            return StepResult(name="skills", status="failed",
                              detail=f"Failed to copy skill: {skill.name}"), copied
        copied.append(skill.name)

    return StepResult(name="skills", status="updated", detail="Synced skills/"), copied


def run_backup(settings: Settings, echo=print) -> BackupReport:
    """Run the four backup steps in order, stopping at the first failure.

    Args:
        settings: Resolved paths.
        echo: Callable receiving each progress line.

    Returns:
        A report of every step that ran.
    """
    claude_dir = settings.claude_dir
    content_dir = settings.content_dir
    report = BackupReport()

    for sub in ("scripts", "skills", "hooks"):
        (content_dir / sub).mkdir(parents=True, exist_ok=True)
    settings.config_dir.mkdir(parents=True, exist_ok=True)

    logger.info(f"Full backup {claude_dir} -> {settings.sync_dir}")
    total = len(BACKUP_STEPS)

    for index, step in enumerate(BACKUP_STEPS, start=1):
        label = step if step.endswith(".json") else f"{step}/"
        echo(f"[{index}/{total}] Updating {label}...")

        if step == "settings.json":
            result = backup_file(claude_dir / "settings.json",
                                 settings.config_dir / "settings.json", "settings.json")
        elif step == "skills":
            result, copied = backup_skills(claude_dir / "skills", content_dir / "skills")
            for skill_name in copied:
                echo(f"  ✓ Updated skill: {skill_name}")
        else:
            result = backup_tree(claude_dir / step, content_dir / step, step)

        echo(result.to_line())
        report.steps.append(result)
        logger.info(f"backup step {step}: {result.status}")

        if result.status == "failed":
            break

    return report


def main():
    """CLI entry point for ccsync-backup."""
    import argparse

    from .errors import SyncError
    from .logging_config import configure_logging

    parser = argparse.ArgumentParser(
        description="Force a full backup of ~/.claude into the sync directory",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ccsync-backup                          Back up into ~/claude-config-sync
  ccsync-backup --sync-dir ~/dotclaude   Back up into another sync directory
""",
    )
    parser.add_argument("--sync-dir", type=Path, help="Sync directory (default: ~/claude-config-sync)")
    parser.add_argument("--claude-dir", type=Path, help="Assistant config directory (default: ~/.claude)")
    parser.add_argument("--config", type=Path, help="YAML config file")

    args = parser.parse_args()

    try:
        settings = load_settings(args.config, sync_dir=args.sync_dir, claude_dir=args.claude_dir)
        configure_logging(settings.log_dir)
        sys.exit(backup_command(settings))
    except (SyncError, OSError) as e:
        print(f"Error: {e}")
        sys.exit(1)


def backup_command(settings: Settings) -> int:
    """Print the full-backup banner, run it, and return an exit status."""
    print("=== Claude Code Config Sync - Full Backup ===")
    print("")
    print(f"Pulling latest config from {settings.claude_dir} to {settings.sync_dir}")
    print("")

    report = run_backup(settings)

    print("")
    if not report.ok:
        print("=== Backup Failed ===")
        return 1

    print("=== Backup Complete! ===")
    print("")
    print("Review changes with: git status")
    print("Commit with: git add . && git commit -m 'Update config'")
    print("Push with: git push")
    return 0


if __name__ == "__main__":
    main()
