"""
Heartbeat Check
===============

Periodic check that asks the model whether any scheduled task or recent
notification needs attention. Bypasses action dispatch entirely: the reply
only decides whether an alert is raised.

Scheduling the check is left to the caller (a cron job, a timer, or the
``POST /heartbeat`` route).
"""

from typing import Optional

from phone_agent.agent.prompts import build_heartbeat_prompt, extract_alert
from phone_agent.device.providers import AlertSink
from phone_agent.llm.errors import LLMError
from phone_agent.llm.gateway import ProtocolGateway
from phone_agent.llm.models import RunOptions
from phone_agent.memory.store import MemoryStore
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

ALERT_TITLE = "PhoneAgent Alert"
ALERT_MAX_LENGTH = 200


class HeartbeatMonitor:
    """Runs one heartbeat check per call to ``run_once``."""

    def __init__(
        self,
        memory: MemoryStore,
        gateway: ProtocolGateway,
        alert_sink: AlertSink,
    ) -> None:
        self.memory = memory
        self.gateway = gateway
        self.alert_sink = alert_sink

    async def run_once(self, api_key: Optional[str]) -> Optional[str]:
        """
        Perform one heartbeat check.

        Args:
            api_key: Bearer token; the check is skipped when empty.

        Returns:
            The alert text if an alert was raised, otherwise None.
        """
        if not api_key:
            logger.debug("No API key, skipping heartbeat")
            return None

        scheduled_tasks = self.memory.active_scheduled_tasks()
        notifications = self.memory.recent_notifications_summary()

        if not scheduled_tasks and "No recent" in notifications:
            logger.debug("Nothing to check, skipping heartbeat")
            return None

        prompt = build_heartbeat_prompt(notifications, scheduled_tasks)

        try:
            decision = await self.gateway.send_message(
                prompt,
                None,
                api_key,
                RunOptions(thinking_enabled=False),
            )
        except LLMError as e:
            logger.warning("Heartbeat failed", error=str(e))
            return None

        alert = extract_alert(decision.raw_content, limit=ALERT_MAX_LENGTH)
        if alert is None:
            logger.info("Heartbeat all clear", scheduled_tasks=len(scheduled_tasks))
            return None

        self.alert_sink.notify(ALERT_TITLE, alert)
        logger.info("Heartbeat alert raised", alert=alert)
        return alert
