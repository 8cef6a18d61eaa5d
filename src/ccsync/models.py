"""Data models for claude-config-sync."""

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .settings import DEFAULT_CONTEXT_WINDOW


# ============================================================================
# Hook input and transcript records (produced by the assistant, read-only)
# ============================================================================

class LenientModel(BaseModel):
    """Base for payloads written by the assistant.

    A field holding a value of the wrong type falls back to its default
    instead of rejecting the whole object, so one odd field never hides
    the ones the hooks actually read.
    """

    model_config = ConfigDict(extra="ignore")

    @field_validator("*", mode="wrap")
    @classmethod
    def _default_on_error(cls, value, handler, info):
        try:
            return handler(value)
        except ValidationError:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)


class ContextWindow(LenientModel):
    """The ``context_window`` block of a hook/status payload."""

    context_window_size: int | None = None


class HookInput(LenientModel):
    """JSON object the assistant writes to a hook's stdin."""

    transcript_path: str | None = None
    cwd: str | None = None
    session_id: str | None = None
    hook_event_name: str | None = None
    context_window: ContextWindow = Field(default_factory=ContextWindow)

    def max_context(self, default: int = DEFAULT_CONTEXT_WINDOW) -> int:
        """Context window size, falling back to ``default`` when absent or zero."""
        return self.context_window.context_window_size or default


class TokenUsage(LenientModel):
    """Token counts attached to an assistant message."""

    input_tokens: int | None = None
    cache_read_input_tokens: int | None = None
    cache_creation_input_tokens: int | None = None
    output_tokens: int | None = None

    @property
    def context_length(self) -> int:
        """Tokens occupying the context window (output tokens excluded)."""
        return (
            (self.input_tokens or 0)
            + (self.cache_read_input_tokens or 0)
            + (self.cache_creation_input_tokens or 0)
        )


class TranscriptMessage(LenientModel):
    role: str | None = None
    content: Any = None
    usage: TokenUsage | None = None


class TranscriptRecord(LenientModel):
    """One line of a JSON Lines transcript."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    type: str | None = None
    cwd: str | None = None
    git_branch: str | None = Field(None, alias="gitBranch")
    is_sidechain: bool | None = Field(None, alias="isSidechain")
    is_api_error_message: bool | None = Field(None, alias="isApiErrorMessage")
    message: TranscriptMessage | None = None

    def counts_toward_context(self, require_input_tokens: bool = True) -> bool:
        """Whether this record's usage reflects the main conversation's context.

        With ``require_input_tokens`` a record must also report non-zero
        ``input_tokens``; a record that only carries cache tokens is skipped.
        """
        if self.message is None or self.message.usage is None:
            return False
        if self.is_sidechain is True or self.is_api_error_message is True:
            return False
        if not require_input_tokens:
            return True
        return (self.message.usage.input_tokens or 0) > 0


class ContextUsage(BaseModel):
    """Context consumption derived from the last qualifying transcript record."""

    context_length: int = 0
    max_context: int = DEFAULT_CONTEXT_WINDOW

    @property
    def pct(self) -> int:
        """Integer percentage, truncated toward zero."""
        return self.context_length * 100 // self.max_context


class HandoffState(BaseModel):
    """Snapshot saved when a handoff fires, restored on the next prompt."""

    pct: int
    context: int
    max_context: int
    cwd: str = ""
    branch: str = ""
    last_context: list[str] = Field(default_factory=list)
    recent_files: list[str] = Field(default_factory=list)
    saved_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


# ============================================================================
# Backup / sync reports
# ============================================================================

StepStatus = Literal["updated", "skipped_symlink", "missing", "failed"]


class StepResult(BaseModel):
    """Outcome of one step of a full backup."""

    name: str
    status: StepStatus
    detail: str = ""

    def to_line(self) -> str:
        symbol = {"updated": "✓", "skipped_symlink": "ℹ", "missing": "✗", "failed": "✗"}[self.status]
        return f"  {symbol} {self.detail}"


class BackupReport(BaseModel):
    steps: list[StepResult] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(step.status != "failed" for step in self.steps)


ChangeKind = Literal["new", "updated", "deleted"]


class SyncChange(BaseModel):
    """A single item the incremental sync added, replaced, or removed."""

    kind: ChangeKind
    name: str

    def to_line(self) -> str:
        return f"  [{self.kind.upper()}] {self.name}"


class SyncReport(BaseModel):
    changes: list[SyncChange] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)

    @property
    def change_count(self) -> int:
        return len(self.changes)
