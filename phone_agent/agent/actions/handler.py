"""
Action Router
=============

Maps a Decision's action verb to at most one call on the automation
provider. Capability failures and exceptions are logged and folded into
the returned DispatchResult; dispatch never raises.

Usage:
    from phone_agent.agent.actions import ActionRouter

    router = ActionRouter(device)
    result = await router.dispatch(decision)
"""

import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from phone_agent.device.providers import AutomationProvider
from phone_agent.llm.models import Decision
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

COORDINATE_PATTERN = re.compile(r"[(\[]?(\d+)[,\s]+(\d+)[)\]]?")


@dataclass
class DispatchResult:
    """
    Result of dispatching one decision.

    Attributes:
        success: Whether the capability reported success.
        capability: Name of the capability invoked, None if nothing ran.
        error: Error message if the capability failed or raised.
    """

    success: bool
    capability: Optional[str] = None
    error: Optional[str] = None


def parse_coordinates(target: str) -> Optional[tuple[int, int]]:
    """
    Find the first coordinate pair in a target description.

    Examples:
        >>> parse_coordinates("(540, 1200)")
        (540, 1200)
        >>> parse_coordinates("Settings icon") is None
        True
    """
    match = COORDINATE_PATTERN.search(target)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


class ActionRouter:
    """
    Routes decisions to automation capabilities.

    Each verb triggers zero or one capability call, except ``tap`` on a
    non-coordinate target which may fall back from text to description.
    """

    def __init__(self, automation: AutomationProvider) -> None:
        self.automation = automation
        self._simple: dict[str, Callable[[], Awaitable[bool]]] = {
            "scroll_down": automation.scroll_down,
            "scroll_up": automation.scroll_up,
            "swipe_left": automation.swipe_left,
            "swipe_right": automation.swipe_right,
            "press_back": automation.press_back,
            "press_home": automation.press_home,
        }

    async def dispatch(self, decision: Decision) -> DispatchResult:
        """
        Execute the decision's action.

        Args:
            decision: Parsed model decision.

        Returns:
            DispatchResult describing what ran and whether it worked.
        """
        action = decision.action
        logger.info("Dispatching action", action=action, target=decision.target)

        try:
            if action == "tap":
                result = await self._handle_tap(decision.target)
            elif action == "type":
                result = await self._handle_type(decision.text)
            elif action == "open_app":
                result = await self._handle_open_app(decision.package_name, decision.target)
            elif action in self._simple:
                result = DispatchResult(success=await self._simple[action](), capability=action)
            else:
                logger.warning("Unknown action ignored", action=action)
                return DispatchResult(success=False, error=f"Unknown action: {action}")
        except Exception as e:
            logger.error("Action raised", action=action, error=str(e))
            return DispatchResult(success=False, capability=action, error=str(e))

        if not result.success and result.capability:
            result.error = result.error or f"{result.capability} reported failure"
            logger.warning("Action failed", action=action, error=result.error)
        return result

    async def _handle_tap(self, target: str) -> DispatchResult:
        coordinates = parse_coordinates(target)
        if coordinates:
            x, y = coordinates
            return DispatchResult(
                success=await self.automation.tap_at_coordinates(x, y),
                capability="tap_at_coordinates",
            )

        if await self.automation.tap_by_text(target):
            return DispatchResult(success=True, capability="tap_by_text")

        logger.debug("No text match, trying description", target=target)
        return DispatchResult(
            success=await self.automation.tap_by_description(target),
            capability="tap_by_description",
        )

    async def _handle_type(self, text: Optional[str]) -> DispatchResult:
        if text is None:
            logger.warning("Type action without text ignored")
            return DispatchResult(success=False, error="No text to type")
        return DispatchResult(
            success=await self.automation.type_text(text),
            capability="type_text",
        )

    async def _handle_open_app(self, package_name: Optional[str], target: str) -> DispatchResult:
        if package_name:
            return DispatchResult(
                success=await self.automation.open_app(package_name),
                capability="open_app",
            )
        return DispatchResult(
            success=await self.automation.tap_by_text(target),
            capability="tap_by_text",
        )
