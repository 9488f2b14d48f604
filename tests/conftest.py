"""
Shared Test Fixtures
====================

Pytest fixtures used across all test modules.
Provides a temporary memory store and correctly-typed provider and
gateway mocks matching the actual codebase APIs.
"""

import os

# Set env vars BEFORE any phone_agent.* imports so cached settings pick them up
os.environ.setdefault("LLM_API_KEY", "nvapi-test-key-for-testing")
os.environ.setdefault("SETTLE_DELAY", "0")
os.environ.setdefault("MEMORY_DB_PATH", ":memory:")

from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from phone_agent.agent.orchestrator import AgentConfig
from phone_agent.device.providers import AlertSink, AutomationProvider, ObservationProvider
from phone_agent.llm.gateway import ProtocolGateway
from phone_agent.llm.models import Decision
from phone_agent.memory.store import MemoryStore

# A 1x1 black PNG base64
PNG_B64 = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mP8/5+hHgAHggJ/PchI7wAAAABJRU5ErkJggg=="

AUTOMATION_METHODS = (
    "tap_by_text",
    "tap_by_description",
    "tap_at_coordinates",
    "type_text",
    "scroll_up",
    "scroll_down",
    "swipe_left",
    "swipe_right",
    "open_app",
    "press_back",
    "press_home",
)


def make_decision(
    action: str = "tap",
    target: str = "(540, 1200)",
    reason: str = "Next step",
    is_complete: bool = False,
    text: Optional[str] = None,
    package_name: Optional[str] = None,
    screen: str = "Home screen",
    thinking: str = "",
    raw_content: Optional[str] = None,
) -> Decision:
    """Helper to build a Decision with a plausible raw reply."""
    if raw_content is None:
        raw_content = (
            f"SCREEN: {screen}\nACTION: {action}\nTARGET: {target}\n"
            f"TEXT: {text or 'null'}\nPACKAGE: {package_name or 'null'}\n"
            f"REASON: {reason}\nCOMPLETE: {'yes' if is_complete else 'no'}"
        )
    return Decision(
        screen=screen,
        action=action,
        target=target,
        reason=reason,
        is_complete=is_complete,
        text=text,
        package_name=package_name,
        raw_content=raw_content,
        thinking=thinking,
    )


# ---------------------------------------------------------------------------
# Memory
# ---------------------------------------------------------------------------

@pytest.fixture
def memory(tmp_path) -> MemoryStore:
    """Create a memory store backed by a temporary SQLite file."""
    store = MemoryStore(str(tmp_path / "memory.db"))
    yield store
    store.close()


# ---------------------------------------------------------------------------
# Provider mocks
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_automation() -> MagicMock:
    """Create a mock AutomationProvider whose capabilities all succeed."""
    automation = MagicMock(spec=AutomationProvider)
    for name in AUTOMATION_METHODS:
        setattr(automation, name, AsyncMock(return_value=True))
    return automation


@pytest.fixture
def mock_observation() -> MagicMock:
    """Create a mock ObservationProvider returning a tiny PNG."""
    observation = MagicMock(spec=ObservationProvider)
    observation.capture_observation = AsyncMock(return_value=PNG_B64)
    return observation


@pytest.fixture
def mock_alert_sink() -> MagicMock:
    return MagicMock(spec=AlertSink)


# ---------------------------------------------------------------------------
# Gateway mock
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_gateway() -> MagicMock:
    """Create a mock ProtocolGateway that completes on the first step."""
    gateway = MagicMock(spec=ProtocolGateway)
    gateway.send_message = AsyncMock(
        return_value=make_decision(action="done", reason="Settings opened", is_complete=True)
    )
    gateway.close = AsyncMock()
    return gateway


@pytest.fixture
def agent_config() -> AgentConfig:
    """Agent config with no settle wait."""
    return AgentConfig(max_steps=15, settle_delay=0)
