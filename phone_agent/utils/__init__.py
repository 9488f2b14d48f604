"""
Utility modules for the Phone Agent.

This package contains:
    - logger: Structured logging with structlog
    - security: Key masking and input sanitization
"""

from phone_agent.utils.logger import get_logger, setup_logging, LogContext
from phone_agent.utils.security import mask_sensitive, redact_payload, validate_input_safe

__all__ = [
    "get_logger",
    "setup_logging",
    "LogContext",
    "mask_sensitive",
    "redact_payload",
    "validate_input_safe",
]
