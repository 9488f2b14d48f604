"""
LLM Integration Module
======================

Chat-completions gateway and reply parsing for the Phone Agent.

This package contains:
    - gateway: Request builder and HTTP client for the remote model
    - response_parser: Parse the labelled line reply format
    - models: Generation config, run options and the Decision data class
    - errors: Gateway exception taxonomy
"""

from phone_agent.llm.errors import APIStatusError, LLMError, ProtocolError, TransportError
from phone_agent.llm.gateway import SYSTEM_PROMPT, ProtocolGateway
from phone_agent.llm.models import Decision, LLMConfig, RunOptions
from phone_agent.llm.response_parser import (
    ACTION_VOCABULARY,
    FIELD_LABELS,
    extract_thinking,
    parse_decision,
    strip_thinking,
)

__all__ = [
    "ProtocolGateway",
    "SYSTEM_PROMPT",
    "LLMConfig",
    "RunOptions",
    "Decision",
    "LLMError",
    "TransportError",
    "ProtocolError",
    "APIStatusError",
    "parse_decision",
    "extract_thinking",
    "strip_thinking",
    "ACTION_VOCABULARY",
    "FIELD_LABELS",
]
