"""Exception types for claude-config-sync.

Everything raised on purpose by the sync, backup, and install commands
derives from SyncError so the CLI can report it as a one-line error and exit 1.
Hook commands never let these escape.
"""


class SyncError(Exception):
    """Base error for claude-config-sync operations."""


class ConfigError(SyncError):
    """Configuration file or environment value could not be used."""


class LockError(SyncError):
    """Another sync holds the lock file."""


class GitError(SyncError):
    """A git command exited non-zero."""

    def __init__(self, args: list[str], returncode: int, stderr: str = ""):
        self.command = args
        self.returncode = returncode
        self.stderr = stderr.strip()
        message = f"git {' '.join(args)} failed with exit code {returncode}"
        if self.stderr:
            message += f": {self.stderr}"
        super().__init__(message)
