"""
Tests for the DeepSeek oracle.

The OpenAI-compatible client is replaced with an AsyncMock; no network.
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from openai import APIConnectionError, APITimeoutError

from config import settings
from vendorconnect.ai.intent import AssistantAction, ParsedIntent, Unresolved
from vendorconnect.ai.oracle import AssistantOracle
from vendorconnect.exceptions import AssistantTimeout, CollaboratorUnavailable

REQUEST = httpx.Request("POST", "https://api.deepseek.com/chat/completions")


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def client():
    mock = MagicMock()
    mock.chat.completions.create = AsyncMock()
    return mock


@pytest.fixture
def oracle(client):
    return AssistantOracle(client=client, model="deepseek-chat")


async def test_parses_action_and_params(oracle, client):
    client.chat.completions.create.return_value = completion(
        json.dumps({"action": "get_user_tasks", "params": {"user_name": "Sarah"}})
    )
    result = await oracle.interpret("anything for sarah?")

    assert isinstance(result, ParsedIntent)
    assert result.action == AssistantAction.GET_USER_TASKS
    assert result.params == {"user_name": "Sarah"}
    assert result.source == "oracle"

    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "deepseek-chat"
    assert kwargs["messages"][0]["role"] == "system"


async def test_non_json_reply_is_unresolved(oracle, client):
    client.chat.completions.create.return_value = completion("I think you want a dashboard")
    result = await oracle.interpret("hmm")
    assert isinstance(result, Unresolved)
    assert result.raw_text == "I think you want a dashboard"


async def test_unknown_action_is_unresolved(oracle, client):
    client.chat.completions.create.return_value = completion('{"action": "order_pizza"}')
    result = await oracle.interpret("lunch?")
    assert isinstance(result, Unresolved)
    assert "order_pizza" in result.raw_text


async def test_bad_params_are_dropped(oracle, client):
    client.chat.completions.create.return_value = completion('{"action": "get_dashboard", "params": [1]}')
    result = await oracle.interpret("overview")
    assert result.params == {}


async def test_timeout_raises_assistant_timeout(oracle, client):
    client.chat.completions.create.side_effect = APITimeoutError(request=REQUEST)
    with pytest.raises(AssistantTimeout) as exc_info:
        await oracle.interpret("slow")
    assert exc_info.value.status_code == 504


async def test_connection_error_raises_unavailable(oracle, client):
    client.chat.completions.create.side_effect = APIConnectionError(request=REQUEST)
    with pytest.raises(CollaboratorUnavailable) as exc_info:
        await oracle.interpret("down")
    assert exc_info.value.status_code == 503


async def test_disabled_without_api_key():
    with patch.object(settings, "deepseek_api_key", ""):
        oracle = AssistantOracle()
    assert oracle.enabled is False

    result = await oracle.interpret("anything")
    assert isinstance(result, Unresolved)
    assert result.raw_text is None
