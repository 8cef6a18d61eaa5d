"""Thin wrapper around the git command line for the sync directory."""

import logging
import subprocess
from pathlib import Path

from .errors import GitError

logger = logging.getLogger(__name__)


def run_git(repo: Path, *args: str, check: bool = True) -> subprocess.CompletedProcess:
    """Run ``git <args>`` inside ``repo``.

    Raises:
        GitError: ``check`` is set and git exited non-zero.
    """
    logger.debug(f"git {' '.join(args)} (in {repo})")
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=str(repo),
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as e:
        raise GitError(list(args), 127, "git executable not found") from e
    if check and result.returncode != 0:
        raise GitError(list(args), result.returncode, result.stderr)
    return result


def is_repo(repo: Path) -> bool:
    return (repo / ".git").exists()


def init_repo(repo: Path, branch: str = "main") -> None:
    run_git(repo, "init")
    run_git(repo, "branch", "-M", branch)


def has_changes(repo: Path) -> bool:
    """Whether the working tree has anything to commit, untracked files included."""
    result = run_git(repo, "status", "--porcelain")
    return bool(result.stdout.strip())


def add_all(repo: Path) -> None:
    run_git(repo, "add", "-A")


def commit(repo: Path, message: str) -> None:
    run_git(repo, "commit", "-m", message)


def push(repo: Path, remote: str | None = None, branch: str | None = None, set_upstream: bool = False) -> None:
    args = ["push"]
    if set_upstream:
        args.append("-u")
    if remote:
        args.append(remote)
        if branch:
            args.append(branch)
    run_git(repo, *args)


def remote_url(repo: Path, name: str = "origin") -> str | None:
    result = run_git(repo, "remote", "get-url", name, check=False)
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def last_commit_file_count(repo: Path) -> int:
    """Number of files touched by HEAD (works for the root commit too)."""
    result = run_git(repo, "diff-tree", "--no-commit-id", "--name-only", "-r", "--root", "HEAD")
    return len([line for line in result.stdout.splitlines() if line.strip()])


RUNTIME_FILES = ("logs/", "handoff.log", ".sync.lock", ".handoff_state.json", ".slack-config")


def ensure_excluded(repo: Path, patterns: tuple[str, ...] = RUNTIME_FILES) -> list[str]:
    """Add ccsync's runtime files to .git/info/exclude so they are never committed.

    Returns the patterns that were added.
    """
    exclude = repo / ".git" / "info" / "exclude"
    if not (repo / ".git").is_dir():
        return []
    try:
        existing = exclude.read_text().splitlines()
    except FileNotFoundError:
        existing = []

    missing = [p for p in patterns if p not in existing]
    if missing:
        exclude.parent.mkdir(parents=True, exist_ok=True)
        with open(exclude, "a") as f:
            if existing and existing[-1].strip():
                f.write("\n")
            f.write("# claude-config-sync runtime files\n")
            f.write("\n".join(missing) + "\n")
    return missing
