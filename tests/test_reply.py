"""Reply generators and the LLM client they sit on."""

import json

import httpx
import pytest

from turingchat.core.config import get_settings
from turingchat.core.flags import get_flags
from turingchat.models.session import AutomatedMessage, HumanMessage
from turingchat.services import llm
from turingchat.services.reply import (
    CannedReplyGenerator,
    LLMReplyGenerator,
    build_history,
    get_reply_generator,
)


@pytest.fixture
def openai_env(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.setenv("OPENAI_BASE_URL", "https://llm.test/v1")
    monkeypatch.setenv("DEFAULT_LLM_MODEL", "test-model")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def mock_llm():
    """Route the shared LLM client through a MockTransport. Yields the captured requests."""
    captured = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={
            "choices": [{"message": {"role": "assistant", "content": "lol yeah"}}],
            "usage": {"prompt_tokens": 12, "completion_tokens": 3},
        })

    llm.set_client(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    yield captured
    llm.set_client(None)


def test_build_history_roles():
    transcript = [
        HumanMessage(sender_id="alice", text="hi"),
        AutomatedMessage(sender_id="bot_1", text="hey"),
        HumanMessage(sender_id="alice", text=""),
    ]
    assert build_history(transcript) == [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "hey"},
    ]


@pytest.mark.asyncio
async def test_llm_generator_sends_persona_history_and_turn(openai_env, mock_llm):
    generator = LLMReplyGenerator(persona="be human", provider="openai")
    transcript = [
        HumanMessage(sender_id="alice", text="hi"),
        AutomatedMessage(sender_id="bot_1", text="hey"),
    ]

    reply = await generator.generate("room1", transcript, "are you a bot?")

    assert reply == "lol yeah"
    (request,) = mock_llm
    assert str(request.url) == "https://llm.test/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer test-key"
    payload = json.loads(request.content)
    assert payload["model"] == "test-model"
    assert payload["messages"] == [
        {"role": "system", "content": "be human"},
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "hey"},
        {"role": "user", "content": "are you a bot?"},
    ]


@pytest.mark.asyncio
async def test_llm_http_error_raises(openai_env):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503, text="overloaded")

    llm.set_client(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    try:
        with pytest.raises(httpx.HTTPStatusError):
            await LLMReplyGenerator(provider="openai").generate("room1", [], "hi")
    finally:
        llm.set_client(None)
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_llm_missing_key_raises(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "")
    get_settings.cache_clear()
    try:
        with pytest.raises(ValueError):
            await llm.chat([{"role": "user", "content": "hi"}], provider="openai")
    finally:
        get_settings.cache_clear()


def test_first_choice_text_handles_empty_response():
    assert llm.first_choice_text({}) == ""
    assert llm.first_choice_text({"choices": [{"message": {"content": None}}]}) == ""


@pytest.mark.asyncio
async def test_canned_generator_rotates():
    generator = CannedReplyGenerator(["a", "b"])
    replies = [await generator.generate("room1", [], "hi") for _ in range(3)]
    assert replies == ["a", "b", "a"]


def test_flag_selects_generator(monkeypatch):
    monkeypatch.setenv("FF_USE_LLM_REPLIES", "false")
    get_flags.cache_clear()
    try:
        assert isinstance(get_reply_generator(), CannedReplyGenerator)
        monkeypatch.setenv("FF_USE_LLM_REPLIES", "true")
        get_flags.cache_clear()
        assert isinstance(get_reply_generator(), LLMReplyGenerator)
    finally:
        get_flags.cache_clear()
