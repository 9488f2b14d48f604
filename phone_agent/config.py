"""
Configuration Management
========================

Centralized configuration using Pydantic Settings.
Loads from environment variables and .env file.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Shared config that all settings classes use to load .env
_shared_config = SettingsConfigDict(
    env_file=".env",
    env_file_encoding="utf-8",
    env_prefix="",
    extra="ignore",
)


class LLMSettings(BaseSettings):
    """Remote model configuration (OpenAI-compatible chat completions)."""

    model_config = _shared_config

    llm_api_key: str = Field(
        default="",
        description="Bearer token for the chat completions endpoint",
    )
    llm_api_url: str = Field(
        default="https://integrate.api.nvidia.com/v1/chat/completions",
        description="Chat completions endpoint URL",
    )
    llm_model: str = Field(
        default="moonshotai/kimi-k2.5",
        description="Vision-capable model identifier",
    )
    llm_max_tokens: int = Field(default=2048, description="Max output tokens per reply")
    llm_temperature: float = Field(default=1.0, description="Sampling temperature")
    llm_connect_timeout: float = Field(default=60.0, description="Connect timeout in seconds")
    llm_read_timeout: float = Field(default=120.0, description="Read timeout in seconds")
    llm_write_timeout: float = Field(default=60.0, description="Write timeout in seconds")
    llm_thinking_enabled: bool = Field(
        default=True,
        description="Ask the model for an extended reasoning block",
    )
    llm_history_limit: int = Field(
        default=50,
        description="Number of prior conversation turns sent with each request",
    )


class AgentSettings(BaseSettings):
    """Step-loop configuration."""

    model_config = _shared_config

    max_steps: int = Field(default=15, description="Maximum steps per task")
    settle_delay: float = Field(
        default=1.5,
        description="Seconds to wait after an action before the next screenshot",
    )


class MemorySettings(BaseSettings):
    """Conversation memory configuration."""

    model_config = _shared_config

    memory_db_path: str = Field(
        default="phoneagent.db",
        description="SQLite database file for conversation memory",
    )
    export_limit: int = Field(
        default=1000,
        description="Number of turns included in a history export",
    )


class DeviceSettings(BaseSettings):
    """ADB device configuration."""

    model_config = _shared_config

    adb_device_serial: str = Field(
        default="",
        description="Specific ADB device serial (leave empty for auto-detect)",
    )
    adb_path: str = Field(
        default="",
        description="Path to the adb executable (leave empty to search PATH)",
    )


class ServerSettings(BaseSettings):
    """Server configuration settings."""

    model_config = _shared_config

    server_host: str = Field(default="0.0.0.0", description="Server host")
    server_port: int = Field(default=8000, description="Server port")
    debug: bool = Field(default=True, description="Debug mode")
    environment: str = Field(default="development", description="Environment name (development, staging, production)")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level",
    )
    cors_origins: str = Field(default="*", description="CORS origins")

    @field_validator("cors_origins")
    @classmethod
    def parse_cors_origins(cls, v: str) -> str:
        """Keep CORS origins as string, parse when needed."""
        return v

    def get_cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]


class Settings(BaseSettings):
    """
    Main settings class combining all configuration sections.

    Usage:
        from phone_agent.config import get_settings
        settings = get_settings()
        print(settings.llm.llm_model)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Nested settings
    llm: LLMSettings = Field(default_factory=LLMSettings)
    agent: AgentSettings = Field(default_factory=AgentSettings)
    memory: MemorySettings = Field(default_factory=MemorySettings)
    device: DeviceSettings = Field(default_factory=DeviceSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    def __init__(self, **kwargs):
        """Initialize settings with nested configuration."""
        super().__init__(**kwargs)
        # Re-initialize nested settings to pick up env vars
        self.llm = LLMSettings()
        self.agent = AgentSettings()
        self.memory = MemorySettings()
        self.device = DeviceSettings()
        self.server = ServerSettings()


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings loaded from environment.
    """
    return Settings()
