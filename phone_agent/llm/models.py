"""
LLM Model Configuration
=======================

Data classes for the chat-completions gateway: generation config,
per-call options, and the structured Decision parsed from a model reply.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from phone_agent.config import LLMSettings

DEFAULT_API_URL = "https://integrate.api.nvidia.com/v1/chat/completions"
DEFAULT_MODEL = "moonshotai/kimi-k2.5"


@dataclass
class LLMConfig:
    """
    Configuration for the chat-completions gateway.

    Attributes:
        model: Model identifier sent in the request body.
        api_url: Full chat-completions endpoint URL.
        max_tokens: Maximum tokens in the reply.
        temperature: Sampling temperature (0.0-2.0).
        connect_timeout: Seconds to establish the connection.
        read_timeout: Seconds to wait for response data.
        write_timeout: Seconds allowed to send the request body.
        history_limit: Number of recent turns replayed to the model.
    """

    model: str = DEFAULT_MODEL
    api_url: str = DEFAULT_API_URL
    max_tokens: int = 2048
    temperature: float = 1.0
    connect_timeout: float = 60.0
    read_timeout: float = 120.0
    write_timeout: float = 60.0
    history_limit: int = 50

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not self.api_url:
            raise ValueError("api_url is required")
        if not self.model:
            raise ValueError("model is required")
        if self.temperature < 0 or self.temperature > 2:
            raise ValueError("Temperature must be between 0 and 2")
        if self.max_tokens < 1:
            raise ValueError("max_tokens must be positive")
        if self.history_limit < 0:
            raise ValueError("history_limit must not be negative")
        if min(self.connect_timeout, self.read_timeout, self.write_timeout) <= 0:
            raise ValueError("Timeouts must be positive")

    @classmethod
    def from_settings(cls, settings: "LLMSettings") -> "LLMConfig":
        """Build a config from the LLM settings section."""
        return cls(
            model=settings.llm_model,
            api_url=settings.llm_api_url,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
            connect_timeout=settings.llm_connect_timeout,
            read_timeout=settings.llm_read_timeout,
            write_timeout=settings.llm_write_timeout,
            history_limit=settings.llm_history_limit,
        )


@dataclass
class RunOptions:
    """
    Per-call options for a model request.

    Attributes:
        thinking_enabled: Ask the model for a reasoning trace.
    """

    thinking_enabled: bool = True


@dataclass
class Decision:
    """
    Structured model reply.

    Attributes:
        screen: Model's description of the visible screen.
        action: Lower-cased action verb.
        target: Element description or coordinate text.
        text: Text to type, None if absent.
        package_name: App package to open, None if absent.
        reason: Why the action was chosen.
        is_complete: Model declared the task complete.
        raw_content: The untouched reply text.
        thinking: Reasoning trace, empty if none.
    """

    screen: str
    action: str
    target: str
    reason: str
    is_complete: bool = False
    text: Optional[str] = None
    package_name: Optional[str] = None
    raw_content: str = ""
    thinking: str = ""

    @property
    def is_failure(self) -> bool:
        """Check if the model gave up on the task."""
        return self.action == "failed"

    @property
    def is_success(self) -> bool:
        """Check if the task is done (a failed verb takes precedence)."""
        return not self.is_failure and (self.is_complete or self.action == "done")
