"""
Response Parser
===============

Parse model replies in the labelled line format.
Extracts the optional reasoning trace and the decision fields.

Response Format:
    <think>optional reasoning</think>
    SCREEN: what is currently visible on screen
    ACTION: one of the action vocabulary verbs
    TARGET: element description or coordinates like (540, 1200)
    TEXT: text to type, or null
    PACKAGE: app package name, or null
    REASON: why this action is being taken
    COMPLETE: yes or no

Only the first line starting with ``LABEL:`` is honored for each label.
Values never span lines; anything after the first line is ignored.
"""

import re

from phone_agent.llm.models import Decision
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

FIELD_LABELS = ("SCREEN", "ACTION", "TARGET", "TEXT", "PACKAGE", "REASON", "COMPLETE")

ACTION_VOCABULARY = frozenset(
    {
        "tap",
        "type",
        "scroll_up",
        "scroll_down",
        "swipe_left",
        "swipe_right",
        "open_app",
        "press_back",
        "press_home",
        "done",
        "failed",
    }
)

DEFAULT_SCREEN = "Unable to parse screen description"
DEFAULT_ACTION = "failed"
DEFAULT_REASON = "No reason provided"

_THINK_PATTERN = re.compile(r"<think>(.*?)</think>", re.DOTALL)


def extract_thinking(content: str) -> str:
    """
    Get the first reasoning block, trimmed.

    Args:
        content: Raw reply text.

    Returns:
        Text inside the first ``<think>...</think>`` block, or "" if none.
    """
    match = _THINK_PATTERN.search(content)
    return match.group(1).strip() if match else ""


def strip_thinking(content: str) -> str:
    """Remove every reasoning block and trim the remainder."""
    return _THINK_PATTERN.sub("", content).strip()


def extract_fields(content: str) -> dict[str, str]:
    """
    Scan lines for labelled fields.

    Args:
        content: Reply text with reasoning blocks already removed.

    Returns:
        Mapping of every label in FIELD_LABELS to its trimmed value,
        "" when the label never starts a line.
    """
    fields = dict.fromkeys(FIELD_LABELS, "")
    pending = set(FIELD_LABELS)

    for line in content.splitlines():
        if not pending:
            break
        for label in tuple(pending):
            prefix = f"{label}:"
            if line.startswith(prefix):
                fields[label] = line[len(prefix):].strip()
                pending.discard(label)
                break

    return fields


def _optional(value: str) -> str | None:
    if not value or value.lower() == "null":
        return None
    return value


def parse_decision(content: str) -> Decision:
    """
    Parse a raw model reply into a Decision.

    Args:
        content: The untouched reply text.

    Returns:
        Decision with defaults applied to missing fields.

    Example:
        >>> decision = parse_decision("SCREEN: Home\\nACTION: TAP\\nTARGET: (540, 1200)")
        >>> decision.action
        'tap'
        >>> decision.reason
        'No reason provided'
    """
    thinking = extract_thinking(content)
    fields = extract_fields(strip_thinking(content))

    action = fields["ACTION"].lower().strip() or DEFAULT_ACTION
    if action not in ACTION_VOCABULARY:
        logger.warning("Unrecognized action verb", action=action)

    decision = Decision(
        screen=fields["SCREEN"] or DEFAULT_SCREEN,
        action=action,
        target=fields["TARGET"],
        text=_optional(fields["TEXT"]),
        package_name=_optional(fields["PACKAGE"]),
        reason=fields["REASON"] or DEFAULT_REASON,
        is_complete=fields["COMPLETE"].lower() == "yes",
        raw_content=content,
        thinking=thinking,
    )

    logger.debug(
        "Parsed model reply",
        action=decision.action,
        is_complete=decision.is_complete,
        thinking_length=len(thinking),
    )

    return decision
