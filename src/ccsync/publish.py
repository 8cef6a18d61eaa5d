"""Commit and push the sync directory: quick-sync, auto-sync and push."""

import logging
import socket
from datetime import datetime

from . import git_ops
from .errors import GitError
from .lock import sync_lock
from .notify import COLOR_FAILURE, COLOR_INFO, COLOR_SUCCESS, notify
from .settings import Settings
from .sync import run_sync

logger = logging.getLogger(__name__)


def _stamp() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M")


def _summary(prefix: str, changes: int, commit_msg: str) -> str:
    return (
        f"{prefix}\n\n*Changes:* {changes} file(s) updated\n"
        f"*Commit:* {commit_msg}\n*Host:* {socket.gethostname()}"
    )


def quick_sync(settings: Settings) -> int:
    """Sync, commit everything and push in one go. Returns an exit status."""
    repo = settings.sync_dir
    git_ops.ensure_excluded(repo)

    print("=== Quick Sync ===")
    print("")
    run_sync(settings)

    print("")
    print("=== Committing & Pushing ===")
    print("")

    git_ops.add_all(repo)
    if not git_ops.has_changes(repo):
        print("No changes to commit.")
        return 0

    commit_msg = f"Sync: {_stamp()}"
    git_ops.commit(repo, f"{commit_msg}\n\nAuto-synced from ~/.claude")
    git_ops.push(repo)

    changes = git_ops.last_commit_file_count(repo)
    logger.info(f"Quick sync pushed {changes} file(s)")
    notify(settings, _summary("✅ Manual sync complete!", changes, commit_msg), COLOR_SUCCESS)

    print("")
    print("=== Done! ===")
    return 0


def auto_sync(settings: Settings) -> int:
    """Unattended sync for cron. All progress goes to the log, not stdout.

    Raises:
        LockError: Another sync is running.
        GitError: Commit or push failed (a failure notification is sent first).
    """
    repo = settings.sync_dir

    git_ops.ensure_excluded(repo)

    with sync_lock(settings.lock_file, settings.lock_stale_seconds):
        logger.info("=== Auto-sync started ===")
        notify(settings, f"🔄 Auto-sync started at {_stamp()}", COLOR_INFO)

        run_sync(settings, echo=logger.info)

        if not git_ops.has_changes(repo):
            logger.info("No changes detected")
            logger.info("=== Auto-sync complete (no changes) ===")
            return 0

        commit_msg = f"Auto-sync: {_stamp()}"
        try:
            git_ops.add_all(repo)
            git_ops.commit(repo, commit_msg)
            git_ops.push(repo)
        except GitError as e:
            logger.error(f"Auto-sync failed: {e}")
            notify(settings, f"❌ Auto-sync failed on {socket.gethostname()}\n\n{e}", COLOR_FAILURE)
            raise

        logger.info("=== Auto-sync complete (changes pushed) ===")
        changes = git_ops.last_commit_file_count(repo)
        notify(settings, _summary("✅ Sync complete!", changes, commit_msg), COLOR_SUCCESS)
    return 0


def push_to_remote(settings: Settings, remote: str = "origin", branch: str = "main") -> int:
    """Commit pending changes and push, with upstream tracking."""
    repo = settings.sync_dir

    print("=== Claude Code Config Sync - Push to Remote ===")
    print("")

    git_ops.ensure_excluded(repo)
    url = git_ops.remote_url(repo, remote)
    if url is None:
        print(f"No git remote '{remote}' found.")
        print("")
        print("To add a remote, run:")
        print(f"  git remote add {remote} <your-repo-url>")
        print("")
        print("Example:")
        print(f"  git remote add {remote} git@github.com:username/claude-config-sync.git")
        print("")
        print("After adding the remote, run this command again.")
        return 1

    print(f"Remote: {url}")
    print("")

    if git_ops.has_changes(repo):
        print("Found uncommitted changes. Committing...")
        git_ops.add_all(repo)
        git_ops.commit(repo, "Update Claude Code config")
        print("  ✓ Committed changes")
    else:
        print("No uncommitted changes.")

    print("")
    print("Pushing to remote...")
    git_ops.push(repo, remote, branch, set_upstream=True)

    print("")
    print("=== Push Complete! ===")
    return 0
