"""Configuration schema for codeagent.

Configuration is loaded from .codeagent.yml in the sandbox root.
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ModelConfig(BaseModel):
    """Chat-completions endpoint configuration."""

    model_config = ConfigDict(protected_namespaces=())

    provider: str = "openai-compatible"
    base_url: str = "http://localhost:11434/v1"
    model_id: str = "llama3.1"
    api_key_env: str = "CODEAGENT_API_KEY"
    temperature: float = 0.3
    max_tokens: int = 4096
    max_concurrency: int = 4
    timeout_seconds: int = 300
    retry_max: int = 6

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        # Both speak the OpenAI chat-completions protocol ModelClient uses.
        valid_providers = {"ollama", "openai-compatible"}
        if v not in valid_providers:
            raise ValueError(f"Invalid provider: {v}. Must be one of {valid_providers}")
        return v

    @field_validator("retry_max", "max_concurrency")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @property
    def api_key(self) -> str | None:
        return os.getenv(self.api_key_env) or None


class SandboxConfig(BaseModel):
    """Path sandbox configuration."""

    # Path components that are never readable or writable, e.g. [".git", ".env"].
    forbidden_components: list[str] = Field(default_factory=list)


class TelemetryConfig(BaseModel):
    """Telemetry and logging configuration."""

    enabled: bool = True
    log_path: str = ".codeagent/telemetry.jsonl"
    retention_days: int = 30


class AgentConfig(BaseModel):
    """Conversation settings for the code agent."""

    max_history_messages: int = 20


class CodeAgentConfig(BaseModel):
    """Complete codeagent configuration."""

    model: ModelConfig = Field(default_factory=ModelConfig)
    sandbox: SandboxConfig = Field(default_factory=SandboxConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)

    @classmethod
    def load_from_file(cls, config_path: Path | str) -> CodeAgentConfig:
        """Load configuration from YAML file."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            data = yaml.safe_load(f)

        return cls(**(data or {}))

    @classmethod
    def load_from_repo(cls, root: Path | str) -> CodeAgentConfig:
        """Load configuration from the root's .codeagent.yml."""
        config_path = Path(root) / ".codeagent.yml"

        if not config_path.exists():
            # Return default configuration
            return cls()

        return cls.load_from_file(config_path)

    def apply_env_overrides(self) -> None:
        """Apply environment variable overrides to configuration."""
        # Model overrides
        if url := os.getenv("CODEAGENT_BASE_URL"):
            self.model.base_url = url
        if model := os.getenv("CODEAGENT_MODEL"):
            self.model.model_id = model
        if temp := os.getenv("CODEAGENT_TEMPERATURE"):
            self.model.temperature = float(temp)
        if retries := os.getenv("CODEAGENT_RETRY_MAX"):
            self.model.retry_max = int(retries)

        # Telemetry overrides
        if log_path := os.getenv("CODEAGENT_TELEMETRY_PATH"):
            self.telemetry.log_path = log_path
        if os.getenv("CODEAGENT_TELEMETRY_DISABLED") == "1":
            self.telemetry.enabled = False


def load_config(root: Path | str) -> CodeAgentConfig:
    """
    Load configuration for a sandbox root.

    Args:
        root: Path to the sandbox root directory

    Returns:
        Loaded and validated configuration
    """
    config = CodeAgentConfig.load_from_repo(root)
    config.apply_env_overrides()
    return config
