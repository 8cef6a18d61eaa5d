"""Context handoff hooks.

Four hook commands, all reading the assistant's hook JSON from stdin:

- auto-handoff:  fires when context usage is strictly above 70%
- context-check: UserPromptSubmit variant, fires at 45% or more
- precompact:    static notice for the PreCompact event
- resume:        re-injects the state saved by the last auto-handoff

Hooks must never break the assistant's prompt loop, so malformed input
produces no output and exit status 0.
"""

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

from pydantic import ValidationError

from .models import ContextUsage, HandoffState, HookInput
from .settings import Settings
from .transcript import (
    iter_records,
    last_context_record,
    latest_branch,
    recent_files,
    recent_user_messages,
)

logger = logging.getLogger(__name__)

RULE = "━" * 59

CONTEXT_CHECK_TEMPLATE = f"""{RULE}
🔄 AUTO-HANDOFF TRIGGERED (Context at {{pct}}%)
{RULE}

CRITICAL: Context at {{pct}}%. You MUST immediately run the handoff
skill BEFORE responding to the user's message.

IMMEDIATE ACTION REQUIRED: /handoff

Do NOT respond to the user until handoff completes.

This preserves all context better than auto-compact would.

{RULE}"""

AUTO_HANDOFF_TEMPLATE = """🔄 Context at {pct}% - triggering auto-handoff...
1. Clearing context...
2. Running handoff...
3. Reading HANDOVER.md...

<handle_action>
<tools>
None
</tools>
<execute>
Please perform the following actions:

1. **Clear the context** - Clear the conversation context to free up memory
2. **Run dx handoff** - Execute: `/dx:gha handoff`
3. **Read HANDOVER.md** - Read the file at `{handover_path}` to understand the current state

Context was at {pct}% ({context}/{max_context} tokens), which exceeds the {threshold}% threshold.
</execute>
</handle_action>
"""

PRECOMPACT_NOTICE = f"""{RULE}
🔄 AUTO-HANDOFF TRIGGERED
{RULE}

CRITICAL: The context is approaching its limit. You MUST now
run the handoff skill to preserve conversation state.

Execute: /handoff

After handoff completes, inform the user they should:
1. Run: /clear
2. Start fresh conversation with: @HANDOFF.md

This preserves all context better than auto-compact would.

{RULE}"""

RESUME_TEMPLATE = f"""
{RULE}
🔄 RESUMING FROM CONTEXT HANDOFF
{RULE}

**Previous Session Context (saved at {{pct}}% usage):**

📍 **Location:** {{cwd}}
🔀 **Branch:** {{branch}}
📊 **Context Was:** {{context}} / {{max_context}} tokens ({{pct}}%)

**Recent Task Context:**
{{last_context}}

**Recently Accessed Files:**
{{recent_files}}

{RULE}

Continue working on the task above. The conversation context was
cleared to free memory, but all essential state has been preserved.

{RULE}"""


def read_hook_input(stream: TextIO) -> HookInput:
    """Parse hook JSON from ``stream``; anything unusable becomes an empty input."""
    try:
        data = json.load(stream)
    except (json.JSONDecodeError, ValueError):
        return HookInput()
    if not isinstance(data, dict):
        return HookInput()
    try:
        return HookInput.model_validate(data)
    except ValidationError:
        return HookInput()


def exceeds_threshold(pct: int, threshold: int, inclusive: bool = False) -> bool:
    return pct >= threshold if inclusive else pct > threshold


def _transcript(hook_input: HookInput) -> Path | None:
    if not hook_input.transcript_path:
        return None
    path = Path(hook_input.transcript_path)
    return path if path.is_file() else None


def _append_handoff_log(settings: Settings, lines: list[str]) -> None:
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    lines = [f"[{timestamp}] {lines[0]}", *(f"  {line}" for line in lines[1:])]
    try:
        settings.handoff_log.parent.mkdir(parents=True, exist_ok=True)
        with open(settings.handoff_log, "a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")
    except OSError as e:
        logger.warning(f"Could not write {settings.handoff_log}: {e}")


def save_handoff_state(settings: Settings, state: HandoffState) -> None:
    try:
        settings.handoff_state_file.parent.mkdir(parents=True, exist_ok=True)
        settings.handoff_state_file.write_text(state.model_dump_json(indent=2) + "\n")
    except OSError as e:
        logger.warning(f"Could not save handoff state: {e}")


def load_handoff_state(settings: Settings) -> HandoffState | None:
    path = settings.handoff_state_file
    if not path.is_file():
        return None
    try:
        return HandoffState.model_validate_json(path.read_text())
    except (OSError, ValidationError) as e:
        logger.warning(f"Discarding unreadable handoff state {path}: {e}")
        return None


def auto_handoff(hook_input: HookInput, settings: Settings) -> str | None:
    """Return handoff instructions when usage is strictly above the threshold.

    When it fires, a record is appended to ``handoff.log`` and a
    HandoffState snapshot is written for the resume hook.
    """
    transcript = _transcript(hook_input)
    if transcript is None:
        return None

    max_context = hook_input.max_context(settings.default_context_window)
    records = list(iter_records(transcript))
    record = last_context_record(records)
    context_length = record.message.usage.context_length if record else 0
    usage = ContextUsage(context_length=context_length, max_context=max_context)
    threshold = settings.handoff_threshold

    if not exceeds_threshold(usage.pct, threshold):
        logger.debug(f"Context at {usage.pct}% (threshold {threshold}%), no handoff")
        return None

    logger.info(f"Auto-handoff triggered at {usage.pct}% ({context_length}/{max_context})")
    _append_handoff_log(settings, [
        f"Auto-handoff triggered at {usage.pct}% (threshold: {threshold}%)",
        f"Context: {context_length} / {max_context} tokens",
        f"Transcript: {transcript}",
    ])

    save_handoff_state(settings, HandoffState(
        pct=usage.pct,
        context=context_length,
        max_context=max_context,
        cwd=hook_input.cwd or (record.cwd if record and record.cwd else ""),
        branch=latest_branch(records),
        last_context=recent_user_messages(records),
        recent_files=recent_files(records),
    ))

    return AUTO_HANDOFF_TEMPLATE.format(
        pct=usage.pct,
        context=context_length,
        max_context=max_context,
        threshold=threshold,
        handover_path=settings.sync_dir / "HANDOVER.md",
    )


def context_check(hook_input: HookInput, settings: Settings) -> str | None:
    """UserPromptSubmit check: fire at or above the (lower) prompt threshold."""
    transcript = _transcript(hook_input)
    if transcript is None:
        return None

    record = last_context_record(list(iter_records(transcript)), require_input_tokens=False)
    if record is None:
        return None

    usage = ContextUsage(
        context_length=record.message.usage.context_length,
        max_context=hook_input.max_context(settings.default_context_window),
    )
    if usage.context_length == 0:
        return None
    if not exceeds_threshold(usage.pct, settings.context_check_threshold, inclusive=True):
        return None

    logger.info(f"Context check fired at {usage.pct}%")
    return CONTEXT_CHECK_TEMPLATE.format(pct=usage.pct)


def precompact_notice() -> str:
    return PRECOMPACT_NOTICE


def resume_from_state(settings: Settings) -> str | None:
    """Render and consume the saved handoff state, if any."""
    state = load_handoff_state(settings)
    if state is None:
        # Remove corrupt leftovers so the hook does not warn on every prompt
        settings.handoff_state_file.unlink(missing_ok=True)
        return None

    text = RESUME_TEMPLATE.format(
        pct=state.pct,
        cwd=state.cwd,
        branch=state.branch or "(not a git repo)",
        context=state.context,
        max_context=state.max_context,
        last_context="\n".join(f"• {line}" for line in state.last_context[:3]),
        recent_files="\n".join(f"  - {path}" for path in state.recent_files[:5]),
    )

    settings.handoff_state_file.unlink(missing_ok=True)
    _append_handoff_log(settings, [
        "Handoff state restored",
        f"Previous context: {state.context} / {state.max_context} tokens ({state.pct}%)",
    ])
    return text


HOOKS = {
    "auto-handoff": auto_handoff,
    "context-check": context_check,
    "precompact": lambda hook_input, settings: precompact_notice(),
    "resume": lambda hook_input, settings: resume_from_state(settings),
}


def run_hook(name: str, settings: Settings, stdin: TextIO = sys.stdin, stdout: TextIO = sys.stdout) -> int:
    """Run one hook by name. Always returns 0; output goes to ``stdout``."""
    # precompact and resume ignore stdin, but the assistant still writes to it
    hook_input = read_hook_input(stdin) if name in ("auto-handoff", "context-check") else HookInput()
    output = HOOKS[name](hook_input, settings)
    if output:
        print(output, file=stdout)
    return 0


def main():
    """CLI entry point for ccsync-handoff (the auto-handoff hook)."""
    from .errors import ConfigError
    from .logging_config import configure_logging
    from .settings import load_settings

    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"ccsync-handoff: {e}", file=sys.stderr)
        sys.exit(0)
    configure_logging(settings.log_dir)
    sys.exit(run_hook("auto-handoff", settings))


if __name__ == "__main__":
    main()
