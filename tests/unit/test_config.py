"""Unit tests for configuration loading and validation."""

import pytest

from codeagent.config import (
    AgentConfig,
    CodeAgentConfig,
    ModelConfig,
    SandboxConfig,
    TelemetryConfig,
    load_config,
)


class TestModelConfig:
    """Tests for ModelConfig."""

    def test_default_config(self):
        config = ModelConfig()
        assert config.provider == "openai-compatible"
        assert config.base_url == "http://localhost:11434/v1"
        assert config.model_id == "llama3.1"
        assert config.temperature == 0.3
        assert config.max_tokens == 4096
        assert config.retry_max == 6

    def test_invalid_provider(self):
        with pytest.raises(ValueError, match="Invalid provider"):
            ModelConfig(provider="invalid-provider")

    @pytest.mark.parametrize("provider", ["ollama", "openai-compatible"])
    def test_valid_providers(self, provider):
        assert ModelConfig(provider=provider).provider == provider

    def test_non_openai_protocol_provider_rejected(self):
        """The client only speaks chat-completions, so other APIs are refused up front."""
        with pytest.raises(ValueError, match="Invalid provider"):
            ModelConfig(provider="anthropic")

    @pytest.mark.parametrize("field", ["retry_max", "max_concurrency"])
    def test_positive_fields(self, field):
        with pytest.raises(ValueError, match="at least 1"):
            ModelConfig(**{field: 0})

    def test_api_key_from_env(self, monkeypatch):
        monkeypatch.setenv("MY_KEY", "secret")
        assert ModelConfig(api_key_env="MY_KEY").api_key == "secret"

    def test_api_key_missing(self, monkeypatch):
        monkeypatch.delenv("CODEAGENT_API_KEY", raising=False)
        assert ModelConfig().api_key is None


class TestSectionDefaults:
    def test_sandbox_defaults(self):
        assert SandboxConfig().forbidden_components == []

    def test_telemetry_defaults(self):
        config = TelemetryConfig()
        assert config.enabled is True
        assert config.log_path == ".codeagent/telemetry.jsonl"
        assert config.retention_days == 30

    def test_agent_defaults(self):
        assert AgentConfig().max_history_messages == 20


class TestCodeAgentConfig:
    def test_load_from_file(self, tmp_path):
        config_file = tmp_path / "config.yml"
        config_file.write_text(
            """
model:
  base_url: https://api.example.com/v1
  model_id: custom-model
  temperature: 0.1
sandbox:
  forbidden_components: [".git", ".env"]
telemetry:
  enabled: false
"""
        )

        config = CodeAgentConfig.load_from_file(config_file)

        assert config.model.base_url == "https://api.example.com/v1"
        assert config.model.model_id == "custom-model"
        assert config.model.temperature == 0.1
        assert config.sandbox.forbidden_components == [".git", ".env"]
        assert config.telemetry.enabled is False
        assert config.agent.max_history_messages == 20

    def test_load_empty_file(self, tmp_path):
        config_file = tmp_path / "config.yml"
        config_file.write_text("")
        assert CodeAgentConfig.load_from_file(config_file) == CodeAgentConfig()

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            CodeAgentConfig.load_from_file(tmp_path / "nope.yml")

    def test_load_from_repo_defaults(self, tmp_path):
        assert CodeAgentConfig.load_from_repo(tmp_path) == CodeAgentConfig()

    def test_load_from_repo_file(self, tmp_path):
        (tmp_path / ".codeagent.yml").write_text("agent:\n  max_history_messages: 4\n")
        assert CodeAgentConfig.load_from_repo(tmp_path).agent.max_history_messages == 4

    def test_invalid_yaml_values(self, tmp_path):
        config_file = tmp_path / "config.yml"
        config_file.write_text("model:\n  provider: nope\n")
        with pytest.raises(ValueError):
            CodeAgentConfig.load_from_file(config_file)


class TestEnvOverrides:
    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("CODEAGENT_BASE_URL", "http://gateway/v1")
        monkeypatch.setenv("CODEAGENT_MODEL", "other-model")
        monkeypatch.setenv("CODEAGENT_TEMPERATURE", "0.7")
        monkeypatch.setenv("CODEAGENT_RETRY_MAX", "2")
        monkeypatch.setenv("CODEAGENT_TELEMETRY_PATH", "logs/t.jsonl")
        monkeypatch.setenv("CODEAGENT_TELEMETRY_DISABLED", "1")

        config = CodeAgentConfig()
        config.apply_env_overrides()

        assert config.model.base_url == "http://gateway/v1"
        assert config.model.model_id == "other-model"
        assert config.model.temperature == 0.7
        assert config.model.retry_max == 2
        assert config.telemetry.log_path == "logs/t.jsonl"
        assert config.telemetry.enabled is False

    def test_load_config_applies_overrides(self, tmp_path, monkeypatch):
        (tmp_path / ".codeagent.yml").write_text("model:\n  model_id: from-file\n")
        monkeypatch.setenv("CODEAGENT_MODEL", "from-env")

        assert load_config(tmp_path).model.model_id == "from-env"
