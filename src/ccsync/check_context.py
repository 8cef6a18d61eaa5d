"""Run the auto-handoff check against the newest transcript on disk.

Useful outside of a hook, e.g. from a status line or by hand: it builds the
same input the assistant would pass to the hook.
"""

import os
import sys
from pathlib import Path
from typing import TextIO

from .handoff import auto_handoff
from .models import ContextWindow, HookInput
from .settings import Settings
from .transcript import iter_records, latest_transcript


def transcript_cwd(transcript: Path) -> str:
    """Working directory recorded on the transcript's last line, else the current one."""
    last = None
    for last in iter_records(transcript):
        pass
    if last is not None and last.cwd:
        return last.cwd
    return os.getcwd()


def build_hook_input(settings: Settings) -> HookInput | None:
    transcript = latest_transcript(settings.transcripts_dir)
    if transcript is None:
        return None
    return HookInput(
        transcript_path=str(transcript),
        cwd=transcript_cwd(transcript),
        context_window=ContextWindow(context_window_size=settings.default_context_window),
    )


def check_context(settings: Settings, stdout: TextIO = sys.stdout) -> int:
    hook_input = build_hook_input(settings)
    if hook_input is None:
        print("No recent transcript found", file=stdout)
        return 0

    output = auto_handoff(hook_input, settings)
    if output:
        print(output, file=stdout)
    return 0
