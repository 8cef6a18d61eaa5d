"""Shared fixtures for claude-config-sync tests.

Every test gets its own fake home with a ``.claude`` directory and an empty
sync directory, so nothing touches the real ~/.claude.
"""

import json
import logging
from pathlib import Path

import pytest

from ccsync.settings import Settings


@pytest.fixture
def temp_home(tmp_path, monkeypatch):
    """Create a temporary home directory for tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setattr(Path, "home", lambda: home)
    for var in ("CS_ROOT", "CS_CLAUDE_DIR", "CCSYNC_HANDOFF_THRESHOLD", "SLACK_WEBHOOK_URL"):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture
def settings(temp_home):
    """Settings pointing at the fake home."""
    claude_dir = temp_home / ".claude"
    claude_dir.mkdir()
    sync_dir = temp_home / "claude-config-sync"
    sync_dir.mkdir()
    return Settings(
        sync_dir=sync_dir,
        claude_dir=claude_dir,
        claude_json=temp_home / ".claude.json",
        shell_rc=temp_home / ".zshrc",
    )


@pytest.fixture(autouse=True)
def reset_ccsync_logger():
    """Detach file handlers so temp dirs can be cleaned up between tests."""
    yield
    root = logging.getLogger("ccsync")
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)


def usage_record(input_tokens, cache_read=0, cache_creation=0, **extra) -> dict:
    """An assistant transcript line carrying token usage."""
    record = {
        "type": "assistant",
        "message": {
            "role": "assistant",
            "content": [{"type": "text", "text": "ok"}],
            "usage": {
                "input_tokens": input_tokens,
                "cache_read_input_tokens": cache_read,
                "cache_creation_input_tokens": cache_creation,
                "output_tokens": 50,
            },
        },
    }
    record.update(extra)
    return record


@pytest.fixture
def write_transcript(tmp_path):
    """Write records (dicts or raw strings) as a JSON Lines transcript."""
    def _write(records, name="session.jsonl") -> Path:
        path = tmp_path / "transcripts" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        lines = [r if isinstance(r, str) else json.dumps(r) for r in records]
        path.write_text("\n".join(lines) + "\n")
        return path
    return _write


@pytest.fixture
def make_record():
    return usage_record
