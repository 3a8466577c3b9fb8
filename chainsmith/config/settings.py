"""
Application settings and configuration management.

Uses Pydantic Settings for validation and environment variable support.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMSettings(BaseSettings):
    """LLM API configuration."""

    model: str = Field(
        default="openai/gpt-4o-mini",
        description="LiteLLM model string, e.g. 'anthropic/claude-3-5-sonnet-20241022', "
                    "'openai/gpt-4o', 'ollama/llama3'. The provider prefix tells LiteLLM "
                    "which API to route the request to.",
    )
    max_tokens: int = Field(default=1024, gt=0, description="Maximum tokens in response")
    temperature: float = Field(default=0.3, ge=0.0, description="Sampling temperature")
    api_key: str = Field(default="", description="API key for the model's provider")
    api_base: str | None = Field(
        default=None,
        description="Override the provider endpoint (e.g. a local Ollama or proxy URL)",
    )
    timeout: float | None = Field(
        default=None, gt=0, description="Per-request timeout in seconds"
    )

    model_config = SettingsConfigDict(env_prefix="LLM_")


class AgentSettings(BaseSettings):
    """Agent executor limits."""

    max_iterations: int | None = Field(
        default=10,
        ge=1,
        description="Maximum model calls per agent invocation. None disables the bound.",
    )
    max_execution_time: float | None = Field(
        default=None,
        gt=0,
        description="Wall-clock budget in seconds, checked before each model call",
    )
    max_parse_retries: int = Field(
        default=2,
        ge=0,
        description="Consecutive unparsable responses tolerated before giving up",
    )
    max_consecutive_tool_errors: int | None = Field(
        default=3,
        ge=1,
        description="Failed tool calls in a row that stop the run. "
                    "None feeds every failure back to the model.",
    )

    model_config = SettingsConfigDict(env_prefix="AGENT_")


class MemorySettings(BaseSettings):
    """Conversation memory configuration."""

    kind: Literal["none", "simple", "window", "token"] = Field(
        default="window", description="Memory implementation to build"
    )
    window_size: int = Field(
        default=10, ge=1, description="Messages kept by window memory"
    )
    max_tokens: int = Field(
        default=2000, ge=1, description="Token budget kept by token memory"
    )
    encoding_name: str = Field(
        default="cl100k_base", description="Tiktoken encoding used by token memory"
    )

    model_config = SettingsConfigDict(env_prefix="MEMORY_")


class Settings(BaseSettings):
    """Main application settings."""

    # Environment
    environment: Literal["development", "production"] = Field(
        default="development", description="Deployment environment"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_file: Path | None = Field(default=None, description="Log file path")

    # Sub-configurations
    llm: LLMSettings = Field(default_factory=LLMSettings)
    agent: AgentSettings = Field(default_factory=AgentSettings)
    memory: MemorySettings = Field(default_factory=MemorySettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields from .env (for future expansion)
    )

    @model_validator(mode="after")
    def _check_production_logging(self) -> "Settings":
        if self.environment == "production" and self.log_level == "DEBUG":
            # DEBUG logs full prompts, which may contain user data
            raise ValueError("DEBUG logging is not allowed in production")
        return self


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def load_settings(env_file: str | Path | None = None) -> Settings:
    """
    Load settings from file and environment.

    Args:
        env_file: Path to .env file (optional)

    Returns:
        Loaded settings instance
    """
    global _settings
    if env_file:
        _settings = Settings(_env_file=env_file)
    else:
        _settings = Settings()
    return _settings
