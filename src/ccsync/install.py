"""Set up a sync directory and install it on a machine.

- setup_repo:       first machine; init git, take a full backup, write .gitignore
- install_links:    new machine; symlink ~/.claude items into the sync directory
- install_plugins:  re-add plugins listed in config/plugins.txt
- init_hooks:       register the ccsync handoff hooks in ~/.claude/settings.json
"""

import json
import logging
import shlex
import shutil
import subprocess
import sys
from pathlib import Path

from . import git_ops
from .backup import backup_file, run_backup, visible_entries
from .errors import SyncError
from .models import SyncReport
from .settings import Settings
from .sync import sync_shell_aliases

logger = logging.getLogger(__name__)

GITIGNORE = """# Machine-specific settings
settings.local.json

# Session data (don't sync)
projects/
history.jsonl
debug/
file-history/
session-env/
shell-snapshots/
paste-cache/
plans/
tasks/
todos/
statsig/
ide/
stats-cache.json

# ccsync runtime files
logs/
handoff.log
.sync.lock
.handoff_state.json
.slack-config

# OS files
.DS_Store
Thumbs.db
"""

ALIAS_SECTION_MARKER = "# Claude Config Sync aliases"
SYNC_ALIASES = f"""
{ALIAS_SECTION_MARKER}
alias cws='ccsync quick-sync'
alias ccs='ccsync sync'
"""

PLUGINS_TEMPLATE = """# Add one plugin per line, e.g.:
# dx@ykdojo
# cc-safe
"""


# ============================================================================
# Hook registration
# ============================================================================

def hook_command(name: str) -> str:
    """Shell command the assistant runs for one ccsync hook."""
    return f"{shlex.quote(sys.executable)} -m ccsync.cli hook {name}"


def build_hook_settings() -> dict:
    return {
        "hooks": {
            "UserPromptSubmit": [
                {
                    "hooks": [
                        {"type": "command", "command": hook_command("resume")},
                        {"type": "command", "command": hook_command("context-check")},
                    ]
                }
            ],
            "PreCompact": [
                {
                    "hooks": [
                        {"type": "command", "command": hook_command("precompact")},
                    ]
                }
            ],
        }
    }


def _has_ccsync_hook(entries: list) -> bool:
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        for hook in entry.get("hooks", []):
            if isinstance(hook, dict) and "ccsync.cli hook" in str(hook.get("command", "")):
                return True
    return False


def init_hooks(settings: Settings, dry_run: bool = False) -> dict:
    """
    Merge ccsync hook registrations into ~/.claude/settings.json.

    Other hooks registered for the same events are preserved; an event that
    already runs a ccsync hook is left untouched.

    Args:
        settings: Resolved paths
        dry_run: If True, don't write changes, just report what would happen

    Returns dict with status info.
    """
    result = {"path": str(settings.claude_dir / "settings.json"), "status": None, "events": []}
    settings_file = settings.claude_dir / "settings.json"

    if settings_file.exists():
        try:
            existing = json.loads(settings_file.read_text() or "{}")
        except json.JSONDecodeError:
            result["status"] = "error"
            result["message"] = f"Could not parse existing {settings_file}"
            return result
        if not isinstance(existing, dict):
            result["status"] = "error"
            result["message"] = "Settings file must contain a JSON object, not " + type(existing).__name__
            return result
    else:
        existing = {}

    hooks = existing.get("hooks")
    if not isinstance(hooks, dict):
        hooks = existing["hooks"] = {}

    for event, entries in build_hook_settings()["hooks"].items():
        current = hooks.get(event)
        if not isinstance(current, list):
            current = hooks[event] = []
        if _has_ccsync_hook(current):
            continue
        current.extend(entries)
        result["events"].append(event)

    if not result["events"]:
        result["status"] = "unchanged"
        return result

    if dry_run:
        result["status"] = "would_update" if settings_file.exists() else "would_create"
        return result

    result["status"] = "updated" if settings_file.exists() else "created"
    settings_file.parent.mkdir(parents=True, exist_ok=True)
    settings_file.write_text(json.dumps(existing, indent=2) + "\n")
    logger.info(f"Registered hooks for {', '.join(result['events'])} in {settings_file}")
    return result


# ============================================================================
# First-machine setup
# ============================================================================

def setup_repo(settings: Settings, echo=print) -> dict:
    """Initialise the sync directory as a git repo and take a first backup."""
    repo = settings.sync_dir
    repo.mkdir(parents=True, exist_ok=True)
    results = {"git_init": False, "gitignore": False, "backup_ok": False}

    if git_ops.is_repo(repo):
        echo("Git repo already exists. Skipping init.")
    else:
        echo("[1/4] Initializing git repo...")
        git_ops.init_repo(repo)
        results["git_init"] = True
    git_ops.ensure_excluded(repo)

    echo("")
    echo("[2/4] Backing up configuration files...")
    report = run_backup(settings, echo=echo)
    results["backup_ok"] = report.ok

    claude_json = backup_file(settings.claude_json, settings.config_dir / ".claude.json", ".claude.json")
    echo(claude_json.to_line())

    echo("")
    echo("[3/4] Extracting shell aliases...")
    alias_report = SyncReport()
    sync_shell_aliases(settings, alias_report)
    if alias_report.changes:
        echo("  ✓ zshrc-aliases.txt")
    else:
        echo("  ✗ No Claude aliases found in shell rc")

    echo("")
    echo("[4/4] Creating .gitignore...")
    gitignore = repo / ".gitignore"
    if gitignore.exists():
        echo("  ℹ .gitignore already exists (keeping it)")
    else:
        gitignore.write_text(GITIGNORE)
        results["gitignore"] = True
        echo("  ✓ .gitignore created")

    return results


# ============================================================================
# New-machine install
# ============================================================================

def _link(source: Path, target: Path, results: dict) -> None:
    """``ln -sf`` for files and links; real directories in the way are skipped."""
    if target.is_dir() and not target.is_symlink():
        results["skipped"].append(str(target))
        return
    if target.is_symlink() or target.exists():
        target.unlink()
    target.symlink_to(source)
    results["linked"].append(str(target))


def install_links(settings: Settings) -> dict:
    """Symlink settings, scripts, skills and hooks from the sync directory into ~/.claude."""
    claude_dir = settings.claude_dir
    content_dir = settings.content_dir
    results = {"linked": [], "skipped": [], "backed_up": [], "missing": []}

    claude_dir.mkdir(parents=True, exist_ok=True)

    settings_source = settings.config_dir / "settings.json"
    settings_target = claude_dir / "settings.json"
    if settings_target.is_file() and not settings_target.is_symlink():
        backup_path = claude_dir / "settings.json.backup"
        shutil.copy2(settings_target, backup_path)
        results["backed_up"].append(str(backup_path))

    if settings_source.is_file():
        _link(settings_source.resolve(), settings_target, results)
    else:
        results["missing"].append("settings.json")

    for sub, want_dirs in (("scripts", False), ("skills", True), ("hooks", False)):
        source_dir = content_dir / sub
        if not source_dir.is_dir():
            results["missing"].append(f"{sub}/")
            continue
        target_dir = claude_dir / sub
        target_dir.mkdir(parents=True, exist_ok=True)
        for item in visible_entries(source_dir):
            if (want_dirs and item.is_dir()) or (not want_dirs and item.is_file()):
                _link(item.resolve(), target_dir / item.name, results)

    logger.info(f"Installed {len(results['linked'])} symlinks into {claude_dir}")
    return results


def install_pre_commit_hook(settings: Settings) -> bool:
    source = settings.sync_dir / "pre-commit-hook"
    if not source.is_file():
        return False
    hooks_dir = settings.sync_dir / ".git" / "hooks"
    hooks_dir.mkdir(parents=True, exist_ok=True)
    target = hooks_dir / "pre-commit"
    shutil.copyfile(source, target)
    target.chmod(0o755)
    return True


def install_shell_aliases(settings: Settings) -> list[str]:
    """Append ccsync aliases (and restored assistant aliases) to the shell rc once."""
    rc = settings.shell_rc
    try:
        rc_text = rc.read_text()
    except FileNotFoundError:
        rc_text = ""

    added = []
    additions = ""
    if ALIAS_SECTION_MARKER not in rc_text:
        additions += SYNC_ALIASES
        added.append("sync aliases")

    saved_aliases = settings.config_dir / "zshrc-aliases.txt"
    if saved_aliases.is_file() and "# Claude Code aliases" not in rc_text:
        additions += "\n" + saved_aliases.read_text()
        added.append("assistant aliases")

    if additions:
        rc.parent.mkdir(parents=True, exist_ok=True)
        with open(rc, "a") as f:
            f.write(additions)
    return added


# ============================================================================
# Plugins
# ============================================================================

def read_plugin_list(path: Path) -> list[str]:
    plugins = []
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        plugins.append(line)
    return plugins


def install_plugins(settings: Settings, echo=print) -> dict:
    """Run ``claude mcp add -s user <plugin>`` for each listed plugin.

    A missing plugins.txt is created from a template and nothing is installed.
    Individual failures are reported and do not stop the loop.
    """
    plugins_file = settings.config_dir / "plugins.txt"
    results = {"installed": [], "failed": [], "created_template": False}

    if not plugins_file.exists():
        plugins_file.parent.mkdir(parents=True, exist_ok=True)
        plugins_file.write_text(PLUGINS_TEMPLATE)
        results["created_template"] = True
        echo(f"Created {plugins_file} - add your plugins there")
        return results

    echo(f"Installing plugins from {plugins_file}...")
    echo("")
    for plugin in read_plugin_list(plugins_file):
        echo(f"Installing: {plugin}")
        try:
            proc = subprocess.run(["claude", "mcp", "add", "-s", "user", plugin], capture_output=True, text=True)
        except FileNotFoundError as e:
            raise SyncError("claude CLI not found on PATH") from e
        if proc.returncode == 0:
            results["installed"].append(plugin)
        else:
            echo(f"  ✗ Failed to install {plugin}")
            logger.warning(f"claude mcp add {plugin} failed: {proc.stderr.strip()}")
            results["failed"].append(plugin)
    return results
