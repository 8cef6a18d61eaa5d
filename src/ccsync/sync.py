"""Incremental sync of ~/.claude into the sync directory.

Only items whose content changed are copied. Each copy or removal is
recorded as a SyncChange so callers can decide whether there is anything
to commit.
"""

import filecmp
import json
import logging
import shutil
from datetime import datetime
from pathlib import Path

from .backup import replace_tree, visible_entries
from .models import SyncChange, SyncReport
from .settings import Settings

logger = logging.getLogger(__name__)

ALIAS_MARKER = "c=claude"
ALIAS_BLOCK_HEADER = "# Claude Code aliases"


def trees_differ(left: Path, right: Path) -> bool:
    """Recursively compare two directories by names and file contents."""
    cmp = filecmp.dircmp(left, right)
    if cmp.left_only or cmp.right_only or cmp.funny_files:
        return True
    _, mismatch, errors = filecmp.cmpfiles(left, right, cmp.common_files, shallow=False)
    if mismatch or errors:
        return True
    return any(trees_differ(left / sub, right / sub) for sub in cmp.common_dirs)


def paths_differ(source: Path, dest: Path) -> bool:
    if source.is_dir() != dest.is_dir():
        return True
    if source.is_dir():
        return trees_differ(source, dest)
    return not filecmp.cmp(source, dest, shallow=False)


def copy_if_changed(source: Path, dest: Path, name: str, report: SyncReport) -> None:
    """Copy ``source`` to ``dest`` when it is new or its content differs."""
    if not source.exists():
        return

    if not dest.exists():
        dest.parent.mkdir(parents=True, exist_ok=True)
        if source.is_dir():
            shutil.copytree(source, dest, symlinks=True)
        else:
            shutil.copy2(source, dest)
        report.changes.append(SyncChange(kind="new", name=name))
        return

    if not paths_differ(source, dest):
        return

    if source.is_dir():
        replace_tree(source, dest)
    else:
        if dest.is_dir():
            shutil.rmtree(dest)
        shutil.copy2(source, dest)
    report.changes.append(SyncChange(kind="updated", name=name))


def _remove(path: Path, name: str, report: SyncReport) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()
    report.changes.append(SyncChange(kind="deleted", name=name))


def sync_settings_file(settings: Settings, report: SyncReport) -> None:
    copy_if_changed(settings.claude_dir / "settings.json",
                    settings.config_dir / "settings.json", "settings.json", report)


def sync_scripts(settings: Settings, report: SyncReport) -> None:
    source_dir = settings.claude_dir / "scripts"
    dest_dir = settings.content_dir / "scripts"
    dest_dir.mkdir(parents=True, exist_ok=True)

    if not source_dir.is_dir():
        return

    for script in visible_entries(source_dir):
        if script.is_file():
            copy_if_changed(script, dest_dir / script.name, f"scripts/{script.name}", report)

    for script in visible_entries(dest_dir):
        if script.is_file() and not (source_dir / script.name).is_file():
            _remove(script, f"scripts/{script.name}", report)


def sync_skills(settings: Settings, report: SyncReport) -> None:
    source_dir = settings.claude_dir / "skills"
    dest_dir = settings.content_dir / "skills"
    dest_dir.mkdir(parents=True, exist_ok=True)

    if not source_dir.is_dir():
        return

    for skill in visible_entries(source_dir):
        if skill.is_dir() and not skill.is_symlink():
            copy_if_changed(skill, dest_dir / skill.name, f"skills/{skill.name}", report)

    for skill in visible_entries(dest_dir):
        if skill.is_dir() and not (source_dir / skill.name).is_dir():
            _remove(skill, f"skills/{skill.name}", report)

    report.notes.append(f"Total skills: {len(visible_entries(dest_dir))}")


def sync_hooks(settings: Settings, report: SyncReport) -> None:
    source_dir = settings.claude_dir / "hooks"
    dest_dir = settings.content_dir / "hooks"
    dest_dir.mkdir(parents=True, exist_ok=True)

    if not source_dir.is_dir():
        return

    for hook in visible_entries(source_dir):
        if hook.is_file():
            copy_if_changed(hook, dest_dir / hook.name, f"hooks/{hook.name}", report)


def sync_claude_json(settings: Settings, report: SyncReport) -> None:
    copy_if_changed(settings.claude_json, settings.config_dir / ".claude.json", ".claude.json", report)


def _load_installed_plugins(path: Path) -> dict:
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read {path}: {e}")
        return {}
    plugins = data.get("plugins") if isinstance(data, dict) else None
    return plugins if isinstance(plugins, dict) else {}


def format_plugin_list(plugins: dict) -> str:
    """Render ``name@scope`` lines from an installed_plugins.json mapping."""
    lines = []
    for name, installs in plugins.items():
        scope = "user"
        if isinstance(installs, list) and installs and isinstance(installs[0], dict):
            scope = installs[0].get("scope") or "user"
        lines.append(f"{name}@{scope}")
    return "\n".join(lines) + "\n" if lines else ""


def sync_plugin_manifests(settings: Settings, report: SyncReport) -> None:
    plugins_dir = settings.claude_dir / "plugins"
    manifest_dir = settings.plugin_manifest_dir
    manifest_dir.mkdir(parents=True, exist_ok=True)

    for manifest in ("installed_plugins.json", "known_marketplaces.json"):
        copy_if_changed(plugins_dir / manifest, manifest_dir / manifest,
                        f"plugins/manifests/{manifest}", report)

    installed = plugins_dir / "installed_plugins.json"
    if installed.is_file():
        report.notes.append(f"Total plugins: {len(_load_installed_plugins(installed))}")

    marketplaces = plugins_dir / "marketplaces"
    if marketplaces.is_dir():
        report.notes.append(f"Total marketplaces: {sum(1 for _ in marketplaces.iterdir())}")
        report.notes.append("(Marketplace repos are not synced - they can be re-registered from manifests)")


def sync_plugin_list(settings: Settings, report: SyncReport) -> None:
    installed = settings.claude_dir / "plugins" / "installed_plugins.json"
    if not installed.is_file():
        return

    content = format_plugin_list(_load_installed_plugins(installed))
    if not content:
        return

    dest = settings.config_dir / "plugins.txt"
    if dest.is_file() and dest.read_text() == content:
        return

    kind = "updated" if dest.exists() else "new"
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_text(content)
    report.changes.append(SyncChange(kind=kind, name="plugins.txt"))


def extract_alias_block(rc_text: str) -> str:
    """Return every ``# Claude Code aliases`` block, each up to and including its first blank line."""
    block = []
    inside = False
    for line in rc_text.splitlines(keepends=True):
        if not inside:
            if ALIAS_BLOCK_HEADER in line:
                inside = True
                block.append(line)
            continue
        block.append(line)
        if line.rstrip("\r\n") == "":
            inside = False
    return "".join(block)


def sync_shell_aliases(settings: Settings, report: SyncReport) -> None:
    rc = settings.shell_rc
    try:
        rc_text = rc.read_text()
    except OSError:
        return
    if ALIAS_MARKER not in rc_text:
        return

    block = extract_alias_block(rc_text)
    if not block:
        return

    dest = settings.config_dir / "zshrc-aliases.txt"
    if dest.is_file() and dest.read_text() == block:
        return

    kind = "updated" if dest.exists() else "new"
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_text(block)
    report.changes.append(SyncChange(kind=kind, name="zshrc-aliases.txt"))


SYNC_STEPS = [
    ("settings.json", sync_settings_file),
    ("scripts", sync_scripts),
    ("skills", sync_skills),
    ("hooks", sync_hooks),
    (".claude.json (MCP servers, plugins)", sync_claude_json),
    ("plugin manifests", sync_plugin_manifests),
    ("plugin list", sync_plugin_list),
    ("shell aliases", sync_shell_aliases),
]


def run_sync(settings: Settings, echo=print) -> SyncReport:
    """Run every sync step in order and return the combined report."""
    report = SyncReport()
    total = len(SYNC_STEPS)
    logger.info(f"Incremental sync {settings.claude_dir} -> {settings.sync_dir}")

    for index, (label, step) in enumerate(SYNC_STEPS, start=1):
        echo(f"[{index}/{total}] Checking {label}...")
        changes_before = len(report.changes)
        notes_before = len(report.notes)

        step(settings, report)

        for change in report.changes[changes_before:]:
            echo(change.to_line())
            logger.info(f"{change.kind}: {change.name}")
        for note in report.notes[notes_before:]:
            echo(f"  {note}")

    return report


def sync_command(settings: Settings) -> int:
    """Print the incremental sync banner and summary. Returns an exit status."""
    print("=== Claude Code Config Sync - Incremental Backup ===")
    print("")

    report = run_sync(settings)

    print("")
    if report.change_count == 0:
        print("=== No changes detected ===")
        print("Everything is already in sync.")
    else:
        print(f"=== Sync Complete! ({report.change_count} change(s)) ===")
        print("")
        print("Commit changes:")
        print("  git add .")
        print(f"  git commit -m 'Sync: {datetime.now():%Y-%m-%d %H:%M}'")
        print("  git push")
    return 0
