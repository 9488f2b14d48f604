"""
Security Utilities
==================

Keeps API keys out of logs and sanitizes user-supplied commands.

Usage:
    from phone_agent.utils.security import mask_sensitive

    masked = mask_sensitive("nvapi-abcdef123")  # nva********
"""

from typing import Any


def mask_sensitive(value: str, visible_chars: int = 3) -> str:
    """
    Mask a sensitive string, showing only first few characters.

    Args:
        value: The string to mask.
        visible_chars: Number of characters to show at start.

    Returns:
        Masked string with asterisks.

    Examples:
        >>> mask_sensitive("password123")
        'pas********'
        >>> mask_sensitive("ab")
        '**'
    """
    if not value:
        return ""

    if len(value) <= visible_chars:
        return "*" * len(value)
    return f"{value[:visible_chars]}{'*' * 8}"


def redact_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """
    Summarize a chat-completions request body for logging.

    Message contents (which may embed base64 screenshots) are replaced with
    their role and size so a log line never carries image data.
    """
    summary = {k: v for k, v in payload.items() if k != "messages"}
    messages = payload.get("messages", [])
    summary["messages"] = [
        {
            "role": msg.get("role"),
            "parts": len(msg["content"]) if isinstance(msg.get("content"), list) else 1,
            "chars": len(str(msg.get("content", ""))),
        }
        for msg in messages
    ]
    return summary


def validate_input_safe(value: str, max_length: int = 10000) -> str:
    """
    Validate and sanitize user input.

    Args:
        value: The input string to validate.
        max_length: Maximum allowed length.

    Returns:
        The sanitized input string.

    Raises:
        ValueError: If input exceeds maximum length.
    """
    if len(value) > max_length:
        raise ValueError(f"Input exceeds maximum length of {max_length}")

    # Remove null bytes and other control characters (except newlines/tabs)
    sanitized = "".join(
        char for char in value if char.isprintable() or char in "\n\t\r"
    )

    return sanitized
