"""Read assistant transcripts and measure context usage.

Transcripts are JSON Lines files written by the assistant. Older tooling
also left whole-array ``.json`` transcripts behind; both are accepted.
Blank and malformed lines are skipped.
"""

import json
import logging
from collections.abc import Iterator
from pathlib import Path

from pydantic import ValidationError

from .models import ContextUsage, TranscriptRecord
from .settings import DEFAULT_CONTEXT_WINDOW

logger = logging.getLogger(__name__)

TRANSCRIPT_PATTERNS = ("*.jsonl", "*.json")


def _iter_raw(path: Path) -> Iterator[dict]:
    with open(path, encoding="utf-8", errors="replace") as f:
        text = f.read()

    if text.lstrip().startswith("["):
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            data = None
        if isinstance(data, list):
            yield from (item for item in data if isinstance(item, dict))
            return

    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(entry, dict):
            yield entry


def iter_records(path: Path) -> Iterator[TranscriptRecord]:
    """Yield parsed transcript records, skipping anything unparseable."""
    for raw in _iter_raw(path):
        try:
            yield TranscriptRecord.model_validate(raw)
        except ValidationError:
            continue


def last_context_record(
    records: list[TranscriptRecord], require_input_tokens: bool = True
) -> TranscriptRecord | None:
    """The last record whose usage counts toward the main context."""
    for record in reversed(records):
        if record.counts_toward_context(require_input_tokens):
            return record
    return None


def measure_context(path: Path, max_context: int = DEFAULT_CONTEXT_WINDOW) -> ContextUsage:
    """Context length of the last qualifying record, or 0 if there is none."""
    record = last_context_record(list(iter_records(path)))
    if record is None:
        return ContextUsage(context_length=0, max_context=max_context)
    return ContextUsage(context_length=record.message.usage.context_length, max_context=max_context)


def _message_text(content) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = [
            block.get("text", "")
            for block in content
            if isinstance(block, dict) and block.get("type") == "text"
        ]
        return " ".join(p for p in parts if p)
    return ""


def recent_user_messages(records: list[TranscriptRecord], limit: int = 3, max_chars: int = 200) -> list[str]:
    """Latest user prompts, oldest first, each flattened to one line."""
    messages = []
    for record in reversed(records):
        if record.message is None or record.message.role != "user":
            continue
        text = " ".join(_message_text(record.message.content).split())
        if not text:
            continue
        if len(text) > max_chars:
            text = text[: max_chars - 3] + "..."
        messages.append(text)
        if len(messages) >= limit:
            break
    return list(reversed(messages))


def recent_files(records: list[TranscriptRecord], limit: int = 5) -> list[str]:
    """Most recently touched file paths from tool calls, newest first."""
    seen: list[str] = []
    for record in reversed(records):
        if record.message is None or not isinstance(record.message.content, list):
            continue
        for block in reversed(record.message.content):
            if not isinstance(block, dict) or block.get("type") != "tool_use":
                continue
            tool_input = block.get("input")
            if not isinstance(tool_input, dict):
                continue
            file_path = tool_input.get("file_path") or tool_input.get("notebook_path")
            if isinstance(file_path, str) and file_path not in seen:
                seen.append(file_path)
                if len(seen) >= limit:
                    return seen
    return seen


def latest_branch(records: list[TranscriptRecord]) -> str:
    for record in reversed(records):
        if record.git_branch:
            return record.git_branch
    return ""


def latest_transcript(directory: Path) -> Path | None:
    """Most recently modified transcript file in ``directory``."""
    if not directory.is_dir():
        return None
    candidates = [p for pattern in TRANSCRIPT_PATTERNS for p in directory.glob(pattern) if p.is_file()]
    if not candidates:
        return None
    return max(candidates, key=lambda p: p.stat().st_mtime)
