"""
Configuration loading for session sync.

Configuration can be provided directly, via environment variables, or via
the ``sync:`` section of ``{home}/settings.yaml``:

```yaml
sync:
  provider: ai-run-sso
  api_base_url: https://codemie.example.com/code-assistant-api
  client_type: codemie-cli
  timeout: 30
  retry_attempts: 3
  retry_delays: [1, 2, 5]
```

Precedence: explicit overrides > environment > settings file > defaults.

Environment Variables:
    CODEMIE_AGENT: Agent name (claude, gemini, ...)
    CODEMIE_SESSION_ID: Internal session id for this CLI invocation
    CODEMIE_PROVIDER: Provider name (ai-run-sso, ...)
    CODEMIE_PROJECT: Project name
    CODEMIE_MODEL: Model name
    CODEMIE_BASE_URL: API base URL
    CODEMIE_API_KEY: Pre-shared identity header value (wins over cookies)
    CODEMIE_COOKIES: Serialized cookie header
    CODEMIE_CLI_VERSION: Client version for telemetry attribution
    CODEMIE_CLIENT_TYPE: Client type for telemetry attribution
    CODEMIE_DRY_RUN: "1"/"true" to log payloads instead of sending them
    CODEMIE_HOME: Data directory (default: ~/.codemie)
    CODEMIE_PROFILE: Profile name for log context
    CODEMIE_METRICS_DISABLED: "1" disables remote metrics and sync
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from .processors.base import ProcessingContext

logger = logging.getLogger(__name__)

DEFAULT_HOME = Path.home() / ".codemie"
SETTINGS_FILE = "settings.yaml"
SESSIONS_DIR = "sessions"
COMPLETED_PREFIX = "completed_"

_ENV_MAP = {
    "CODEMIE_AGENT": "agent_name",
    "CODEMIE_SESSION_ID": "session_id",
    "CODEMIE_PROVIDER": "provider",
    "CODEMIE_PROJECT": "project",
    "CODEMIE_MODEL": "model",
    "CODEMIE_BASE_URL": "api_base_url",
    "CODEMIE_API_KEY": "api_key",
    "CODEMIE_COOKIES": "cookies",
    "CODEMIE_CLI_VERSION": "version",
    "CODEMIE_CLIENT_TYPE": "client_type",
    "CODEMIE_DRY_RUN": "dry_run",
    "CODEMIE_HOME": "home_dir",
    "CODEMIE_PROFILE": "profile_name",
    "CODEMIE_METRICS_DISABLED": "metrics_disabled",
}


@dataclass
class SyncConfig:
    """Configuration for one hook-processing invocation.

    Attributes:
        agent_name: Wrapped agent name ('claude', 'gemini', ...)
        session_id: Internal session id, stable for the CLI process lifetime
        provider: Provider name; remote metrics only flow for metrics_provider
        api_base_url: Backend base URL
        api_key: Pre-shared identity header (takes precedence over cookies)
        cookies: Serialized session cookie header
        timeout: Sync request timeout in seconds
        retry_attempts: Max attempts per sync request
        retry_delays: Backoff table in seconds, clamped to the last entry
        status_timeout: Timeout for session status pings
        status_retry_attempts: Max attempts for session status pings
        home_dir: Root of the on-disk layout
    """

    agent_name: str
    session_id: str
    provider: str = "unknown"
    project: str | None = None
    model: str | None = None
    api_base_url: str | None = None
    api_key: str | None = None
    cookies: str | None = None
    client_type: str = "codemie-cli"
    version: str = "0.0.0"
    dry_run: bool = False
    timeout: float = 30.0
    retry_attempts: int = 3
    retry_delays: tuple[float, ...] = (1.0, 2.0, 5.0)
    status_timeout: float = 10.0
    status_retry_attempts: int = 2
    metrics_provider: str = "ai-run-sso"
    metrics_disabled: bool = False
    profile_name: str | None = None
    home_dir: Path = field(default_factory=lambda: DEFAULT_HOME)

    def __post_init__(self) -> None:
        if not self.agent_name:
            raise ConfigurationError("agent_name", "agent name is required")
        if not self.session_id:
            raise ConfigurationError("session_id", "session id is required")
        self.home_dir = Path(self.home_dir).expanduser()
        self.retry_delays = tuple(float(d) for d in self.retry_delays)
        if self.retry_attempts < 1:
            raise ConfigurationError("retry_attempts", "must be at least 1")

    @classmethod
    def from_env(
        cls,
        settings_path: Path | None = None,
        environ: dict[str, str] | None = None,
        **overrides: Any,
    ) -> SyncConfig:
        """Create config from settings file, environment and overrides."""
        env = os.environ if environ is None else environ

        home = overrides.get("home_dir") or env.get("CODEMIE_HOME") or DEFAULT_HOME
        settings_path = settings_path or Path(home).expanduser() / SETTINGS_FILE

        values: dict[str, Any] = load_settings(settings_path)
        for env_name, attr in _ENV_MAP.items():
            if env_name in env and env[env_name] != "":
                values[attr] = env[env_name]
        values.update({k: v for k, v in overrides.items() if v is not None})

        return cls(**_coerce(values))

    @property
    def metrics_enabled(self) -> bool:
        """Remote metrics and sync are only sent for the metrics provider."""
        return not self.metrics_disabled and self.provider == self.metrics_provider

    @property
    def sessions_dir(self) -> Path:
        return self.home_dir / SESSIONS_DIR

    def session_path(self, session_id: str | None = None) -> Path:
        return session_path(self.sessions_dir, session_id or self.session_id)

    def metrics_path(self, session_id: str | None = None) -> Path:
        return metrics_path(self.sessions_dir, session_id or self.session_id)

    def conversation_path(self, session_id: str | None = None) -> Path:
        return conversation_path(self.sessions_dir, session_id or self.session_id)

    def processing_context(
        self,
        agent_session_id: str | None = None,
        agent_session_file: str | None = None,
    ) -> ProcessingContext:
        """Build the context handed to session adapters and processors."""
        from .processors.base import ProcessingContext

        return ProcessingContext(
            api_base_url=self.api_base_url or "",
            cookies=self.cookies or "",
            api_key=self.api_key,
            client_type=self.client_type,
            version=self.version,
            dry_run=self.dry_run,
            timeout=self.timeout,
            retry_attempts=self.retry_attempts,
            retry_delays=self.retry_delays,
            sessions_dir=self.sessions_dir,
            session_id=self.session_id,
            agent_session_id=agent_session_id,
            agent_session_file=agent_session_file,
        )


def load_settings(path: Path) -> dict[str, Any]:
    """Load the ``sync:`` section of a settings.yaml file.

    A missing file yields an empty dict. A malformed file is logged and
    ignored so that a broken settings file never blocks the wrapped agent.
    """
    if not path.exists():
        return {}

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Ignoring unreadable settings file {path}: {e}")
        return {}

    section = data.get("sync") if isinstance(data, dict) else None
    if not isinstance(section, dict):
        return {}

    known = {f.name for f in fields(SyncConfig)}
    unknown = set(section) - known
    if unknown:
        logger.debug(f"Ignoring unknown sync settings: {sorted(unknown)}")
    return {k: v for k, v in section.items() if k in known}


def session_path(sessions_dir: Path, session_id: str) -> Path:
    """Session metadata file: {sessions_dir}/{session_id}.json"""
    return sessions_dir / f"{session_id}.json"


def metrics_path(sessions_dir: Path, session_id: str) -> Path:
    """Metrics payload queue: {sessions_dir}/{session_id}_metrics.jsonl"""
    return sessions_dir / f"{session_id}_metrics.jsonl"


def conversation_path(sessions_dir: Path, session_id: str) -> Path:
    """Conversation payload queue: {sessions_dir}/{session_id}_conversation.jsonl"""
    return sessions_dir / f"{session_id}_conversation.jsonl"


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _coerce(values: dict[str, Any]) -> dict[str, Any]:
    """Coerce string values from the environment to field types."""
    coerced = dict(values)
    for key in ("dry_run", "metrics_disabled"):
        if key in coerced:
            coerced[key] = _parse_bool(coerced[key])
    for key in ("timeout", "status_timeout"):
        if key in coerced:
            coerced[key] = float(coerced[key])
    for key in ("retry_attempts", "status_retry_attempts"):
        if key in coerced:
            coerced[key] = int(coerced[key])
    if "retry_delays" in coerced:
        delays = coerced["retry_delays"]
        if isinstance(delays, str):
            delays = [d for d in delays.split(",") if d.strip()]
        coerced["retry_delays"] = tuple(float(d) for d in delays)
    if "home_dir" in coerced:
        coerced["home_dir"] = Path(coerced["home_dir"]).expanduser()
    for required in ("agent_name", "session_id"):
        coerced.setdefault(required, "")
    return coerced
