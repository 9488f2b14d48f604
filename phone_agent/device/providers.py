"""
Collaborator Interfaces
=======================

Abstract interfaces the agent loop and heartbeat consume. Concrete devices,
notification feeds and alert channels implement these so the core never
depends on a particular platform.
"""

from abc import ABC, abstractmethod
from typing import Optional

from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)


class ObservationProvider(ABC):
    """Source of screen observations."""

    @abstractmethod
    async def capture_observation(self) -> Optional[str]:
        """
        Capture the current screen.

        Returns:
            Base64-encoded PNG, or None when no observation is available.
        """
        pass


class AutomationProvider(ABC):
    """
    Executes UI capabilities on the controlled surface.

    Every method reports success as a bool and must not raise for ordinary
    failures such as a missing element.
    """

    @abstractmethod
    async def tap_by_text(self, text: str) -> bool:
        """Tap the first clickable element whose text contains ``text``."""
        pass

    @abstractmethod
    async def tap_by_description(self, description: str) -> bool:
        """Tap the first clickable or focusable element whose description contains ``description``."""
        pass

    @abstractmethod
    async def tap_at_coordinates(self, x: float, y: float) -> bool:
        """Tap at absolute screen coordinates."""
        pass

    @abstractmethod
    async def type_text(self, text: str) -> bool:
        """Type text into the focused input."""
        pass

    @abstractmethod
    async def scroll_up(self) -> bool:
        pass

    @abstractmethod
    async def scroll_down(self) -> bool:
        pass

    @abstractmethod
    async def swipe_left(self) -> bool:
        pass

    @abstractmethod
    async def swipe_right(self) -> bool:
        pass

    @abstractmethod
    async def open_app(self, package_name: str) -> bool:
        """Launch an app by package name."""
        pass

    @abstractmethod
    async def press_back(self) -> bool:
        pass

    @abstractmethod
    async def press_home(self) -> bool:
        pass


class NotificationSource(ABC):
    """Supplies a text summary of recent device notifications."""

    @abstractmethod
    def recent_notifications_summary(self) -> str:
        pass


class PreferenceSource(ABC):
    """Supplies stored user preferences."""

    @abstractmethod
    def all_preferences(self) -> dict[str, str]:
        pass


class AlertSink(ABC):
    """Delivers alerts raised by the heartbeat check."""

    @abstractmethod
    def notify(self, title: str, message: str) -> None:
        pass


class LoggingAlertSink(AlertSink):
    """Alert sink that writes alerts to the structured log and keeps the last one."""

    def __init__(self) -> None:
        self.last_alert: Optional[tuple[str, str]] = None

    def notify(self, title: str, message: str) -> None:
        self.last_alert = (title, message)
        logger.warning("Alert raised", title=title, message=message)
