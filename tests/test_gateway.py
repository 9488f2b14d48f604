"""
Tests for Protocol Gateway
==========================

Tests for:
- Request construction (system prompt, history window, image part)
- Reply decoding into a Decision
- Error mapping (transport, status, protocol)
- LLMConfig validation
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from phone_agent.config import LLMSettings
from phone_agent.llm.errors import APIStatusError, LLMError, ProtocolError, TransportError
from phone_agent.llm.gateway import SYSTEM_PROMPT, ProtocolGateway
from phone_agent.llm.models import LLMConfig, RunOptions
from tests.conftest import PNG_B64


def _ok_body(content: str) -> str:
    return json.dumps({"choices": [{"message": {"role": "assistant", "content": content}}]})


@pytest.fixture
def gateway(memory) -> ProtocolGateway:
    return ProtocolGateway(memory, LLMConfig())


class TestBuildRequest:
    def test_system_prompt_first(self, gateway):
        messages = gateway._build_messages("hello", None)
        assert messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
        assert messages[-1] == {"role": "user", "content": "hello"}

    def test_history_oldest_first(self, gateway, memory):
        memory.append_turn("user", "first")
        memory.append_turn("assistant", "second")
        messages = gateway._build_messages("now", None)
        assert messages[1:3] == [
            {"role": "user", "content": "first"},
            {"role": "assistant", "content": "second"},
        ]

    def test_history_window(self, memory):
        gateway = ProtocolGateway(memory, LLMConfig(history_limit=2))
        for i in range(5):
            memory.append_turn("user", f"turn {i}")
        messages = gateway._build_messages("now", None)
        history = [m["content"] for m in messages[1:-1]]
        assert history == ["turn 3", "turn 4"]

    def test_image_part_precedes_text(self, gateway):
        messages = gateway._build_messages("look", PNG_B64)
        content = messages[-1]["content"]
        assert content[0] == {
            "type": "image_url",
            "image_url": {"url": f"data:image/png;base64,{PNG_B64}"},
        }
        assert content[1] == {"type": "text", "text": "look"}

    def test_payload_fields(self, gateway):
        payload = gateway._build_payload("hi", None, RunOptions(thinking_enabled=True))
        assert payload["model"] == "moonshotai/kimi-k2.5"
        assert payload["max_tokens"] == 2048
        assert payload["temperature"] == 1.0
        assert payload["stream"] is False
        assert payload["chat_template_kwargs"] == {"thinking": True}

    def test_payload_without_thinking(self, gateway):
        payload = gateway._build_payload("hi", None, RunOptions(thinking_enabled=False))
        assert "chat_template_kwargs" not in payload


class TestSendMessage:
    @pytest.mark.asyncio
    async def test_success(self, gateway):
        reply = "<think>tap it</think>\nSCREEN: Home\nACTION: tap\nTARGET: Settings\nREASON: open\nCOMPLETE: no"
        with patch.object(gateway, "_post", AsyncMock(return_value=(200, _ok_body(reply)))) as post:
            decision = await gateway.send_message("Task: open settings", PNG_B64, "nvapi-key")

        assert decision.action == "tap"
        assert decision.target == "Settings"
        assert decision.thinking == "tap it"
        assert decision.raw_content == reply
        payload, api_key = post.call_args.args
        assert api_key == "nvapi-key"
        assert payload["chat_template_kwargs"] == {"thinking": True}
        assert gateway.api_call_count == 1

    @pytest.mark.asyncio
    async def test_does_not_write_memory(self, gateway, memory):
        with patch.object(gateway, "_post", AsyncMock(return_value=(200, _ok_body("ACTION: done")))):
            await gateway.send_message("hi", None, "key")
        assert memory.count_turns() == 0

    @pytest.mark.asyncio
    async def test_status_error_uses_server_message(self, gateway):
        body = json.dumps({"error": {"message": "Invalid API key"}})
        with patch.object(gateway, "_post", AsyncMock(return_value=(401, body))):
            with pytest.raises(APIStatusError) as exc_info:
                await gateway.send_message("hi", None, "bad")
        assert str(exc_info.value) == "Invalid API key"
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_status_error_without_json(self, gateway):
        with patch.object(gateway, "_post", AsyncMock(return_value=(502, "Bad Gateway"))):
            with pytest.raises(APIStatusError, match="API error 502: Bad Gateway"):
                await gateway.send_message("hi", None, "key")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body,message",
        [
            ("", "Empty response from API"),
            ("{}", "No choices in response"),
            ('{"choices": []}', "No choices in response"),
            ('{"choices": [{"index": 0}]}', "No message in response"),
        ],
    )
    async def test_protocol_errors(self, gateway, body, message):
        with patch.object(gateway, "_post", AsyncMock(return_value=(200, body))):
            with pytest.raises(ProtocolError, match=message):
                await gateway.send_message("hi", None, "key")

    @pytest.mark.asyncio
    async def test_invalid_json(self, gateway):
        with patch.object(gateway, "_post", AsyncMock(return_value=(200, "not json"))):
            with pytest.raises(ProtocolError, match="Invalid JSON"):
                await gateway.send_message("hi", None, "key")

    @pytest.mark.asyncio
    async def test_errors_share_base(self, gateway):
        with patch.object(gateway, "_post", AsyncMock(return_value=(200, ""))):
            with pytest.raises(LLMError):
                await gateway.send_message("hi", None, "key")


class TestTransport:
    @pytest.mark.asyncio
    async def test_client_error_becomes_transport_error(self, gateway):
        session = MagicMock()
        session.post.side_effect = aiohttp.ClientConnectionError("connection refused")
        with patch.object(gateway, "_get_session", AsyncMock(return_value=session)):
            with pytest.raises(TransportError, match="connection refused"):
                await gateway.send_message("hi", None, "key")

    @pytest.mark.asyncio
    async def test_timeout_becomes_transport_error(self, gateway):
        session = MagicMock()
        session.post.side_effect = asyncio.TimeoutError()
        with patch.object(gateway, "_get_session", AsyncMock(return_value=session)):
            with pytest.raises(TransportError, match="timed out"):
                await gateway.send_message("hi", None, "key")

    @pytest.mark.asyncio
    async def test_post_sends_bearer_header(self, gateway):
        response = MagicMock()
        response.status = 200
        response.text = AsyncMock(return_value="body")
        context = MagicMock()
        context.__aenter__ = AsyncMock(return_value=response)
        context.__aexit__ = AsyncMock(return_value=False)
        session = MagicMock()
        session.post.return_value = context

        with patch.object(gateway, "_get_session", AsyncMock(return_value=session)):
            status, body = await gateway._post({"model": "m"}, "nvapi-key")

        assert (status, body) == (200, "body")
        kwargs = session.post.call_args.kwargs
        assert kwargs["headers"]["Authorization"] == "Bearer nvapi-key"
        assert kwargs["json"] == {"model": "m"}
        assert session.post.call_args.args[0] == gateway.config.api_url

    @pytest.mark.asyncio
    async def test_close_without_session(self, gateway):
        await gateway.close()
        assert gateway._session is None


class TestLLMConfig:
    def test_defaults(self):
        config = LLMConfig()
        assert config.api_url == "https://integrate.api.nvidia.com/v1/chat/completions"
        assert config.max_tokens == 2048
        assert config.history_limit == 50

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"temperature": 2.5},
            {"temperature": -0.1},
            {"max_tokens": 0},
            {"api_url": ""},
            {"model": ""},
            {"read_timeout": 0},
            {"history_limit": -1},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            LLMConfig(**kwargs)

    def test_from_settings(self):
        settings = LLMSettings(llm_model="other/model", llm_max_tokens=512, llm_history_limit=10)
        config = LLMConfig.from_settings(settings)
        assert config.model == "other/model"
        assert config.max_tokens == 512
        assert config.history_limit == 10
