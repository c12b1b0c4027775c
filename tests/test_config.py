"""Tests for SyncConfig loading."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from agent_session_sync.config import SyncConfig, load_settings
from agent_session_sync.exceptions import ConfigurationError


def write_settings(path: Path, sync: dict) -> Path:
    path.write_text(yaml.safe_dump({"sync": sync}), encoding="utf-8")
    return path


class TestFromEnv:
    """Tests for SyncConfig.from_env."""

    def test_reads_environment(self, tmp_path: Path) -> None:
        """CODEMIE_* variables are parsed into typed fields."""
        config = SyncConfig.from_env(
            environ={
                "CODEMIE_AGENT": "claude",
                "CODEMIE_SESSION_ID": "sess-1",
                "CODEMIE_PROVIDER": "ai-run-sso",
                "CODEMIE_BASE_URL": "https://api.example.com",
                "CODEMIE_COOKIES": "session=abc",
                "CODEMIE_DRY_RUN": "true",
                "CODEMIE_HOME": str(tmp_path),
            }
        )

        assert config.agent_name == "claude"
        assert config.session_id == "sess-1"
        assert config.api_base_url == "https://api.example.com"
        assert config.dry_run is True
        assert config.sessions_dir == tmp_path / "sessions"

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("1", True), ("yes", True), ("ON", True), ("0", False), ("false", False)],
    )
    def test_bool_parsing(self, tmp_path: Path, value: str, expected: bool) -> None:
        """Common truthy spellings enable flags."""
        config = SyncConfig.from_env(
            environ={"CODEMIE_METRICS_DISABLED": value, "CODEMIE_HOME": str(tmp_path)},
            agent_name="claude",
            session_id="s",
        )

        assert config.metrics_disabled is expected

    def test_empty_values_are_ignored(self, tmp_path: Path) -> None:
        """An exported but empty variable does not override defaults."""
        config = SyncConfig.from_env(
            environ={"CODEMIE_PROVIDER": "", "CODEMIE_HOME": str(tmp_path)},
            agent_name="claude",
            session_id="s",
        )

        assert config.provider == "unknown"

    def test_settings_file(self, tmp_path: Path) -> None:
        """The sync section of settings.yaml supplies defaults."""
        write_settings(
            tmp_path / "settings.yaml",
            {"provider": "ai-run-sso", "timeout": 12, "retry_delays": [0.5, 1], "bogus": 1},
        )

        config = SyncConfig.from_env(
            environ={"CODEMIE_HOME": str(tmp_path)}, agent_name="claude", session_id="s"
        )

        assert config.provider == "ai-run-sso"
        assert config.timeout == 12.0
        assert config.retry_delays == (0.5, 1.0)

    def test_precedence(self, tmp_path: Path) -> None:
        """Overrides beat environment, which beats the settings file."""
        settings = write_settings(
            tmp_path / "custom.yaml", {"provider": "from-file", "model": "file-model"}
        )

        config = SyncConfig.from_env(
            settings_path=settings,
            environ={"CODEMIE_PROVIDER": "from-env", "CODEMIE_MODEL": "env-model"},
            agent_name="claude",
            session_id="s",
            model="override-model",
        )

        assert config.provider == "from-env"
        assert config.model == "override-model"

    def test_delay_list_from_env(self, tmp_path: Path) -> None:
        """Comma-separated delays are parsed."""
        config = SyncConfig.from_env(
            environ={"CODEMIE_HOME": str(tmp_path)},
            agent_name="claude",
            session_id="s",
            retry_delays="0.1, 0.2",
        )

        assert config.retry_delays == (0.1, 0.2)

    def test_missing_agent_is_misuse(self, tmp_path: Path) -> None:
        """A config without an agent name cannot be built."""
        with pytest.raises(ConfigurationError) as exc_info:
            SyncConfig.from_env(environ={"CODEMIE_HOME": str(tmp_path)}, session_id="s")

        assert exc_info.value.field == "agent_name"


class TestLoadSettings:
    """Tests for load_settings."""

    def test_missing_file(self, tmp_path: Path) -> None:
        assert load_settings(tmp_path / "none.yaml") == {}

    def test_malformed_file_is_ignored(self, tmp_path: Path) -> None:
        """A broken settings file never blocks the wrapped agent."""
        path = tmp_path / "settings.yaml"
        path.write_text("sync: [unclosed", encoding="utf-8")

        assert load_settings(path) == {}

    def test_no_sync_section(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text("other: 1\n", encoding="utf-8")

        assert load_settings(path) == {}


class TestSyncConfig:
    """Tests for derived SyncConfig values."""

    def test_metrics_enabled_only_for_metrics_provider(self, make_config) -> None:
        """Remote sync is gated on the provider and the disable flag."""
        assert make_config().metrics_enabled is True
        assert make_config(provider="bedrock").metrics_enabled is False
        assert make_config(metrics_disabled=True).metrics_enabled is False

    def test_paths(self, make_config, tmp_path: Path) -> None:
        """Per-session files live under {home}/sessions."""
        config = make_config()

        assert config.session_path() == tmp_path / "sessions" / "sess-1.json"
        assert config.metrics_path("x") == tmp_path / "sessions" / "x_metrics.jsonl"
        assert config.conversation_path() == tmp_path / "sessions" / "sess-1_conversation.jsonl"

    def test_processing_context(self, make_config) -> None:
        """The processing context carries API identity and the queue directory."""
        config = make_config(api_base_url="https://api", api_key="user-1")

        context = config.processing_context("ext-1", "/tmp/t.jsonl")

        assert context.api_base_url == "https://api"
        assert context.api_key == "user-1"
        assert context.sessions_dir == config.sessions_dir
        assert context.session_id == "sess-1"
        assert context.agent_session_id == "ext-1"
        assert context.agent_session_file == "/tmp/t.jsonl"

    def test_invalid_retry_attempts(self, make_config) -> None:
        with pytest.raises(ConfigurationError):
            make_config(retry_attempts=0)
