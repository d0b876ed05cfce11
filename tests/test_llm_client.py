"""Tests for shared.llm_client."""
import json

import httpx
import pytest

from shared.errors import ProviderError
from shared.llm_client import CompletionClient, build_clients


def _client(provider, handler, api_key="key", **kw):
    return CompletionClient(
        provider=provider, api_key=api_key, transport=httpx.MockTransport(handler), **kw
    )


def test_unknown_provider_rejected():
    with pytest.raises(ValueError):
        CompletionClient(provider="anthropic-ish")


def test_openai_request_and_response():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={
            "choices": [{"message": {"content": "Risk score: 3."}}],
            "usage": {"prompt_tokens": 12, "completion_tokens": 4},
        })

    result = _client("openai", handler, model="gpt-test").chat("Analyze", temperature=0.2, max_tokens=50)
    assert result.content == "Risk score: 3."
    assert result.provider == "openai"
    assert result.model == "gpt-test"
    assert result.prompt_tokens == 12
    assert result.completion_tokens == 4
    assert result.simulated is False

    request = seen[0]
    assert str(request.url) == "https://api.openai.com/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer key"
    body = json.loads(request.content)
    assert body["model"] == "gpt-test"
    assert body["temperature"] == 0.2
    assert body["max_tokens"] == 50
    assert body["messages"][0]["role"] == "system"
    assert body["messages"][1] == {"role": "user", "content": "Analyze"}


def test_groq_uses_openai_format():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

    result = _client("groq", handler).chat("hi")
    assert result.content == "ok"
    assert seen[0].url.host == "api.groq.com"
    assert json.loads(seen[0].content)["model"] == "llama3-8b-8192"


def test_gemini_request_and_response():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={
            "candidates": [{"content": {"parts": [{"text": "Overall score: 70."}]}}],
            "usageMetadata": {"promptTokenCount": 9, "candidatesTokenCount": 5},
        })

    result = _client("gemini", handler, api_key="gk").chat("Review")
    assert result.content == "Overall score: 70."
    assert result.completion_tokens == 5
    assert seen[0].url.path == "/v1beta/models/gemini-pro:generateContent"
    assert seen[0].url.params["key"] == "gk"
    body = json.loads(seen[0].content)
    assert "Review" in body["contents"][0]["parts"][0]["text"]


def test_ollama_needs_no_key():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"message": {"content": "local"}, "eval_count": 7})

    client = _client("ollama", handler, api_key="", base_url="http://ollama:11434")
    assert client.has_credentials
    result = client.chat("hi")
    assert result.content == "local"
    assert result.completion_tokens == 7
    assert str(seen[0].url) == "http://ollama:11434/api/chat"
    assert "Authorization" not in seen[0].headers


def test_missing_key_raises_before_request():
    def handler(request):
        raise AssertionError("no request expected")

    client = _client("openai", handler, api_key="")
    assert not client.has_credentials
    with pytest.raises(ProviderError) as exc:
        client.chat("hi")
    assert exc.value.provider == "openai"


def test_http_error_raises_provider_error():
    client = _client("openai", lambda request: httpx.Response(429, json={"error": "rate limited"}))
    with pytest.raises(ProviderError):
        client.chat("hi")


def test_unexpected_shape_raises_provider_error():
    client = _client("openai", lambda request: httpx.Response(200, json={"choices": []}))
    with pytest.raises(ProviderError):
        client.chat("hi")


def test_connection_error_raises_provider_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ProviderError):
        _client("groq", handler).chat("hi")


@pytest.mark.asyncio
async def test_chat_async():
    client = _client("openai", lambda r: httpx.Response(200, json={"choices": [{"message": {"content": "async"}}]}))
    result = await client.chat_async("hi")
    assert result.content == "async"


def test_is_available():
    assert _client("openai", lambda r: httpx.Response(200)).is_available()
    assert not _client("openai", lambda r: httpx.Response(200), api_key="").is_available()
    assert _client("ollama", lambda r: httpx.Response(200, json={"models": []}), api_key="").is_available()
    assert not _client("ollama", lambda r: httpx.Response(404), api_key="").is_available()


def test_build_clients():
    clients = build_clients(
        api_keys={"openai": "sk", "groq": ""},
        models={"groq": "mixtral"},
        ollama_host="http://box:11434",
        max_tokens=500,
    )
    assert set(clients) == {"openai", "groq", "gemini", "ollama"}
    assert clients["openai"].has_credentials
    assert not clients["groq"].has_credentials
    assert clients["groq"].model == "mixtral"
    assert clients["gemini"].model == "gemini-pro"
    assert clients["ollama"].base_url == "http://box:11434"
    assert clients["openai"].max_tokens == 500
