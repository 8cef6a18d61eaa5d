"""Configuration for claude-config-sync.

Settings are resolved in layers, later layers winning:

1. Built-in defaults (``~/.claude`` mirrored into ``~/claude-config-sync``)
2. ``<sync_dir>/ccsync.yaml`` or an explicit ``--config`` file
3. Environment: ``CS_ROOT``, ``CS_CLAUDE_DIR``, ``CCSYNC_HANDOFF_THRESHOLD``
4. Explicit keyword overrides (CLI flags)
"""

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigError

CONFIG_FILE_NAME = "ccsync.yaml"
DEFAULT_CONTEXT_WINDOW = 200_000
CRON_COMMENT = "claude-config-sync-auto"


def _default_sync_dir() -> Path:
    return Path.home() / "claude-config-sync"


def _default_claude_dir() -> Path:
    return Path.home() / ".claude"


def _default_claude_json() -> Path:
    return Path.home() / ".claude.json"


def detect_shell_rc() -> Path:
    """Return the rc file of the user's shell (zsh or bash)."""
    if os.environ.get("ZSH_VERSION") or "zsh" in os.environ.get("SHELL", ""):
        return Path.home() / ".zshrc"
    return Path.home() / ".bashrc"


class Settings(BaseModel):
    """Resolved paths and knobs shared by every ccsync command."""

    sync_dir: Path = Field(default_factory=_default_sync_dir)
    claude_dir: Path = Field(default_factory=_default_claude_dir)
    claude_json: Path = Field(default_factory=_default_claude_json)
    shell_rc: Path = Field(default_factory=detect_shell_rc)

    handoff_threshold: int = Field(default=70, ge=0, le=100)
    context_check_threshold: int = Field(default=45, ge=0, le=100)
    default_context_window: int = Field(default=DEFAULT_CONTEXT_WINDOW, gt=0)

    lock_stale_seconds: int = Field(default=3600, gt=0)
    cron_schedule: str = "0 21 * * *"
    slack_webhook_url: str | None = None

    @property
    def config_dir(self) -> Path:
        return self.sync_dir / "config"

    @property
    def content_dir(self) -> Path:
        return self.sync_dir / "content"

    @property
    def plugin_manifest_dir(self) -> Path:
        return self.sync_dir / "plugins" / "manifests"

    @property
    def log_dir(self) -> Path:
        return self.sync_dir / "logs"

    @property
    def handoff_log(self) -> Path:
        return self.sync_dir / "handoff.log"

    @property
    def handoff_state_file(self) -> Path:
        return self.sync_dir / ".handoff_state.json"

    @property
    def lock_file(self) -> Path:
        return self.sync_dir / ".sync.lock"

    @property
    def slack_config_file(self) -> Path:
        return self.sync_dir / ".slack-config"

    @property
    def transcripts_dir(self) -> Path:
        return self.claude_dir / "transcripts"


def _load_yaml(path: Path) -> dict:
    """Load a YAML mapping, raising ConfigError on anything else."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping, not {type(data).__name__}")
    return data


def _env_overrides() -> dict:
    values: dict = {}
    if os.environ.get("CS_ROOT"):
        values["sync_dir"] = os.environ["CS_ROOT"]
    if os.environ.get("CS_CLAUDE_DIR"):
        values["claude_dir"] = os.environ["CS_CLAUDE_DIR"]
    if os.environ.get("CCSYNC_HANDOFF_THRESHOLD"):
        values["handoff_threshold"] = os.environ["CCSYNC_HANDOFF_THRESHOLD"]
    return values


def load_settings(config_path: Path | None = None, **overrides) -> Settings:
    """Build Settings from defaults, YAML, environment and overrides.

    Args:
        config_path: Explicit YAML file. When omitted, ``ccsync.yaml`` in the
            sync directory is used if it exists.
        **overrides: Field values that win over everything else. ``None``
            values are ignored so CLI flags can be passed through unchanged.

    Raises:
        ConfigError: The YAML file is unreadable or a value fails validation.
    """
    overrides = {k: v for k, v in overrides.items() if v is not None}
    env = _env_overrides()

    sync_dir = Path(overrides.get("sync_dir") or env.get("sync_dir") or _default_sync_dir())
    values: dict = {}

    if config_path is not None:
        if not Path(config_path).exists():
            raise ConfigError(f"Config file not found: {config_path}")
        values.update(_load_yaml(Path(config_path)))
    elif (sync_dir / CONFIG_FILE_NAME).exists():
        values.update(_load_yaml(sync_dir / CONFIG_FILE_NAME))

    values.update(env)
    values.update(overrides)

    for key in ("sync_dir", "claude_dir", "claude_json", "shell_rc"):
        if key in values:
            values[key] = Path(os.path.expanduser(str(values[key])))

    try:
        return Settings(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
