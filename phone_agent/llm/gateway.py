"""
Protocol Gateway
================

Chat-completions client for the remote vision model.

Builds one request from the system instruction, the recent conversation
history and the current user turn (optionally with a screenshot), sends it
to an OpenAI-compatible endpoint, and parses the reply into a Decision.

The gateway never retries. Every failure is raised as one LLMError subclass
carrying a diagnostic the orchestrator can show to the user.

Usage:
    from phone_agent.llm import LLMConfig, ProtocolGateway, RunOptions

    gateway = ProtocolGateway(memory, LLMConfig())
    decision = await gateway.send_message(
        "Task: open settings",
        observation=screenshot_b64,
        api_key="nvapi-...",
        options=RunOptions(thinking_enabled=True),
    )
"""

import asyncio
import json
from typing import Any, Optional, Protocol

import aiohttp

from phone_agent.llm.errors import APIStatusError, ProtocolError, TransportError
from phone_agent.llm.models import Decision, LLMConfig, RunOptions
from phone_agent.llm.response_parser import parse_decision
from phone_agent.memory.models import ConversationTurn
from phone_agent.utils.logger import get_logger
from phone_agent.utils.security import mask_sensitive, redact_payload

logger = get_logger(__name__)


SYSTEM_PROMPT = """You are PhoneAgent, an autonomous AI agent running on an Android phone. You can see the phone screen through screenshots and control the phone by deciding what actions to take. Your job is to complete tasks given by the user by analyzing the screen and taking precise actions one step at a time.

Always respond in EXACTLY this format with no deviation:
SCREEN: [what is currently visible on screen]
ACTION: [one of: tap, type, scroll_up, scroll_down, swipe_left, swipe_right, open_app, press_back, press_home, done, failed]
TARGET: [description of the exact UI element to interact with, or coordinates like (540, 1200)]
TEXT: [text to type if action is type, otherwise null]
PACKAGE: [app package name if action is open_app, otherwise null]
REASON: [why this action is being taken]
COMPLETE: [yes or no]

Be precise about which element to tap. If you cannot see the element needed, scroll to find it. If a task is impossible, say so clearly with ACTION: failed. Think carefully before each action. You have memory of past conversations and user preferences. You are helpful, efficient, and honest.

For coordinates, estimate them based on typical Android screen layout (1080x2340 or similar). Common positions:
- Status bar: top 50px
- Navigation bar: bottom 100px
- Center of screen: approximately (540, 1170)"""


class HistorySource(Protocol):
    """Anything that can replay recent conversation turns."""

    def recent_turns(self, limit: int) -> list[ConversationTurn]: ...


class ProtocolGateway:
    """
    Async chat-completions gateway with vision support.

    Reads conversation history from memory but never writes to it;
    persisting the exchange is the caller's job.
    """

    def __init__(self, memory: HistorySource, config: Optional[LLMConfig] = None) -> None:
        """
        Initialize the gateway.

        Args:
            memory: Conversation history source.
            config: Endpoint and generation config (defaults if omitted).
        """
        self.memory = memory
        self.config = config or LLMConfig()
        self._session: Optional[aiohttp.ClientSession] = None

        # Counter for API calls
        self.api_call_count = 0

        logger.info(
            "Protocol gateway initialized",
            model=self.config.model,
            api_url=self.config.api_url,
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            # aiohttp exposes no write timeout; connect and read bound the call.
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(
                    sock_connect=self.config.connect_timeout,
                    sock_read=self.config.read_timeout,
                ),
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
        logger.debug("Protocol gateway closed")

    def _build_messages(
        self,
        user_message: str,
        observation: Optional[str],
    ) -> list[dict[str, Any]]:
        """Build system, history and current user messages in order."""
        messages: list[dict[str, Any]] = [{"role": "system", "content": SYSTEM_PROMPT}]

        for turn in self.memory.recent_turns(self.config.history_limit):
            messages.append(turn.to_message())

        if observation is not None:
            content: str | list[dict[str, Any]] = [
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:image/png;base64,{observation}"},
                },
                {"type": "text", "text": user_message},
            ]
        else:
            content = user_message

        messages.append({"role": "user", "content": content})
        return messages

    def _build_payload(
        self,
        user_message: str,
        observation: Optional[str],
        options: RunOptions,
    ) -> dict[str, Any]:
        """Build the chat-completions request body."""
        payload: dict[str, Any] = {
            "model": self.config.model,
            "messages": self._build_messages(user_message, observation),
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "stream": False,
        }
        if options.thinking_enabled:
            payload["chat_template_kwargs"] = {"thinking": True}
        return payload

    async def _post(self, payload: dict[str, Any], api_key: str) -> tuple[int, str]:
        """
        Send the request body.

        Returns:
            Tuple of (HTTP status, response body text).

        Raises:
            TransportError: If no response was received.
        """
        session = await self._get_session()
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        try:
            async with session.post(self.config.api_url, json=payload, headers=headers) as response:
                body = await response.text()
                return response.status, body
        except asyncio.TimeoutError as e:
            raise TransportError("Request to model API timed out") from e
        except aiohttp.ClientError as e:
            raise TransportError(f"Network error: {e}") from e

    @staticmethod
    def _decode_reply(status: int, body: str) -> str:
        """
        Pull the assistant content out of a raw HTTP response.

        Raises:
            APIStatusError: On a non-2xx status.
            ProtocolError: On an empty, undecodable or malformed body.
        """
        if not 200 <= status < 300:
            message = None
            try:
                error = json.loads(body).get("error")
                if isinstance(error, dict):
                    message = error.get("message")
            except (ValueError, AttributeError):
                pass
            raise APIStatusError(message or f"API error {status}: {body}", status_code=status)

        if not body:
            raise ProtocolError("Empty response from API")

        try:
            data = json.loads(body)
        except ValueError as e:
            raise ProtocolError(f"Invalid JSON in response: {e}") from e

        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices:
            raise ProtocolError("No choices in response")

        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if not isinstance(message, dict):
            raise ProtocolError("No message in response")

        return message.get("content") or ""

    async def send_message(
        self,
        user_message: str,
        observation: Optional[str],
        api_key: str,
        options: Optional[RunOptions] = None,
    ) -> Decision:
        """
        Ask the model for the next decision.

        Args:
            user_message: Text of the current user turn.
            observation: Base64 PNG screenshot, or None for a text-only turn.
            api_key: Bearer token for the endpoint.
            options: Per-call options (reasoning on by default).

        Returns:
            Parsed Decision carrying the raw reply and reasoning trace.

        Raises:
            TransportError: On network failure or timeout.
            APIStatusError: On a non-2xx response.
            ProtocolError: On an unusable response body.
        """
        options = options or RunOptions()
        payload = self._build_payload(user_message, observation, options)

        self.api_call_count += 1
        logger.debug(
            "Sending model request",
            key=mask_sensitive(api_key),
            request=redact_payload(payload),
        )

        status, body = await self._post(payload, api_key)
        try:
            content = self._decode_reply(status, body)
        except APIStatusError as e:
            logger.error("Model API error", status=e.status_code, error=str(e))
            raise
        except ProtocolError as e:
            logger.error("Malformed model response", error=str(e))
            raise

        return parse_decision(content)
