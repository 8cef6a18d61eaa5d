"""Slack notifications for sync runs.

The webhook URL comes from, in order: ``slack_webhook_url`` in the
settings, ``SLACK_WEBHOOK_URL`` in ``<sync_dir>/.slack-config`` (shell
``KEY=value`` syntax), or the ``SLACK_WEBHOOK_URL`` environment variable.
Without a URL every notification is a no-op. Delivery failures are logged
and never interrupt a sync.
"""

import asyncio
import logging
import os
import shlex
import socket
import time
from pathlib import Path

import aiohttp

from .settings import Settings

logger = logging.getLogger(__name__)

COLOR_SUCCESS = "#36a64f"
COLOR_INFO = "#439FE0"
COLOR_FAILURE = "#d00000"
NOTIFICATION_TITLE = "Claude Config Sync"
DEFAULT_TIMEOUT = 10


def parse_slack_config(path: Path) -> dict[str, str]:
    """Parse ``KEY=value`` lines (optionally ``export``-prefixed and quoted)."""
    values: dict[str, str] = {}
    try:
        text = path.read_text()
    except OSError:
        return values

    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export "):]
        key, _, raw = line.partition("=")
        try:
            parts = shlex.split(raw, comments=True)
        except ValueError:
            continue
        values[key.strip()] = parts[0] if parts else ""
    return values


def get_webhook_url(settings: Settings) -> str | None:
    if settings.slack_webhook_url:
        return settings.slack_webhook_url
    url = parse_slack_config(settings.slack_config_file).get("SLACK_WEBHOOK_URL")
    return url or os.environ.get("SLACK_WEBHOOK_URL") or None


def build_payload(message: str, color: str = COLOR_SUCCESS, host: str | None = None, ts: int | None = None) -> dict:
    return {
        "attachments": [{
            "color": color,
            "title": NOTIFICATION_TITLE,
            "text": message,
            "footer": host or socket.gethostname(),
            "ts": ts if ts is not None else int(time.time()),
        }]
    }


async def post_slack_message(url: str, payload: dict, timeout: float = DEFAULT_TIMEOUT) -> bool:
    """POST ``payload`` to a Slack incoming webhook. Returns True on HTTP 2xx."""
    try:
        async with aiohttp.ClientSession() as session:
            async with session.post(url, json=payload, timeout=aiohttp.ClientTimeout(total=timeout)) as resp:
                if resp.status >= 300:
                    body = await resp.text()
                    logger.warning(f"Slack webhook returned {resp.status}: {body[:200]}")
                    return False
                return True
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.warning(f"Slack notification failed: {e}")
        return False


def notify(settings: Settings, message: str, color: str = COLOR_SUCCESS) -> bool:
    """Send a notification if a webhook is configured.

    Returns:
        True if a message was delivered, False if skipped or failed.
    """
    url = get_webhook_url(settings)
    if not url:
        return False
    logger.info(f"Slack: {message.splitlines()[0] if message else ''}")
    return asyncio.run(post_slack_message(url, build_payload(message, color)))
