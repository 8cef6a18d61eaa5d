"""Enable or disable the daily auto-sync cron job.

Our entries are tagged with a ``# claude-config-sync-auto`` comment line so
they can be found and removed without touching the rest of the crontab.
"""

import logging
import shlex
import subprocess
import sys

from .errors import SyncError
from .settings import CRON_COMMENT, Settings

logger = logging.getLogger(__name__)


def read_crontab() -> str:
    """Current user crontab, or an empty string when none is installed."""
    try:
        result = subprocess.run(["crontab", "-l"], capture_output=True, text=True)
    except FileNotFoundError as e:
        raise SyncError("crontab not found; install cron to schedule auto-sync") from e
    return result.stdout if result.returncode == 0 else ""


def write_crontab(content: str) -> None:
    result = subprocess.run(["crontab", "-"], input=content, capture_output=True, text=True)
    if result.returncode != 0:
        raise SyncError(f"crontab update failed: {result.stderr.strip()}")


def strip_entries(crontab: str, tag: str = CRON_COMMENT) -> str:
    """Remove every line mentioning ``tag``."""
    lines = [line for line in crontab.splitlines() if tag not in line]
    return "\n".join(lines) + "\n" if lines else ""


def auto_sync_command(settings: Settings) -> str:
    log_file = settings.log_dir / "cron.log"
    return (
        f"{shlex.quote(sys.executable)} -m ccsync.cli --sync-dir {shlex.quote(str(settings.sync_dir))} "
        f"auto-sync >> {shlex.quote(str(log_file))} 2>&1 # {CRON_COMMENT}"
    )


def build_crontab(existing: str, settings: Settings) -> str:
    """Our entry first, followed by the user's other entries."""
    entry = (
        f"# {CRON_COMMENT} - Daily sync\n"
        f"{settings.cron_schedule} {auto_sync_command(settings)}\n"
    )
    return entry + strip_entries(existing)


def enable_auto_sync(settings: Settings) -> str:
    """Install (or replace) the auto-sync cron entry. Returns the new crontab."""
    crontab = build_crontab(read_crontab(), settings)
    write_crontab(crontab)
    logger.info(f"Auto-sync enabled: {settings.cron_schedule}")
    return crontab


def disable_auto_sync() -> str:
    crontab = strip_entries(read_crontab())
    write_crontab(crontab)
    logger.info("Auto-sync disabled")
    return crontab
