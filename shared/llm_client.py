"""Chat completion client for the coaching providers."""
import asyncio
import httpx
import logging
import time
from typing import Dict, Optional

from shared.errors import ProviderError
from shared.schemas import CompletionResult

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert trading analyst and financial advisor. Provide detailed, "
    "actionable insights based on the data provided."
)

DEFAULT_MODELS = {
    "openai": "gpt-4",
    "groq": "llama3-8b-8192",
    "gemini": "gemini-pro",
    "ollama": "llama3",
}

DEFAULT_URLS = {
    "openai": "https://api.openai.com/v1/chat/completions",
    "groq": "https://api.groq.com/openai/v1/chat/completions",
    "gemini": "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent",
    "ollama": "http://localhost:11434",
}

# Providers speaking the OpenAI chat completions format.
OPENAI_COMPATIBLE = {"openai", "groq"}


class CompletionClient:
    """One completion provider: openai, groq, gemini or a local ollama."""

    def __init__(
        self,
        provider: str = "openai",
        api_key: str = "",
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        max_tokens: int = 2000,
        temperature: float = 0.7,
        timeout: float = 120.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if provider not in DEFAULT_URLS:
            raise ValueError(f"Unsupported provider: {provider}")
        self.provider = provider
        self.api_key = api_key
        self.model = model or DEFAULT_MODELS[provider]
        self.base_url = base_url or DEFAULT_URLS[provider]
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout
        self._transport = transport

    @property
    def has_credentials(self) -> bool:
        """Local ollama needs no key; hosted providers do."""
        return self.provider == "ollama" or bool(self.api_key)

    def _request(self, prompt: str, system: str, temperature: float, max_tokens: int):
        """Build (url, payload, headers, params) for the configured provider."""
        if self.provider in OPENAI_COMPATIBLE:
            payload = {
                "model": self.model,
                "messages": [
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                "max_tokens": max_tokens,
                "temperature": temperature,
                "stream": False,
            }
            headers = {
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.api_key}",
            }
            return self.base_url, payload, headers, None

        if self.provider == "gemini":
            payload = {
                "contents": [{"parts": [{"text": f"{system}\n\n{prompt}"}]}],
                "generationConfig": {
                    "maxOutputTokens": max_tokens,
                    "temperature": temperature,
                },
            }
            url = self.base_url.format(model=self.model)
            return url, payload, {"Content-Type": "application/json"}, {"key": self.api_key}

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "options": {"temperature": temperature, "num_predict": max_tokens},
            "stream": False,
        }
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return f"{self.base_url}/api/chat", payload, headers, None

    def _parse(self, data: Dict) -> tuple[str, int, int]:
        """Return (content, prompt_tokens, completion_tokens)."""
        if self.provider in OPENAI_COMPATIBLE:
            usage = data.get("usage") or {}
            return (
                data["choices"][0]["message"]["content"],
                usage.get("prompt_tokens", 0),
                usage.get("completion_tokens", 0),
            )
        if self.provider == "gemini":
            usage = data.get("usageMetadata") or {}
            return (
                data["candidates"][0]["content"]["parts"][0]["text"],
                usage.get("promptTokenCount", 0),
                usage.get("candidatesTokenCount", 0),
            )
        return (
            data.get("message", {}).get("content", ""),
            data.get("prompt_eval_count", 0),
            data.get("eval_count", 0),
        )

    def chat(
        self,
        prompt: str,
        system: str = SYSTEM_PROMPT,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> CompletionResult:
        """
        Send a single-turn completion request.

        Raises ProviderError on missing credentials, HTTP failure or an
        unrecognized response body.
        """
        if not self.has_credentials:
            raise ProviderError(self.provider, "no API key configured")

        url, payload, headers, params = self._request(
            prompt,
            system,
            temperature if temperature is not None else self.temperature,
            max_tokens or self.max_tokens,
        )

        start = time.monotonic()
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                resp = client.post(url, json=payload, headers=headers, params=params)
                resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as e:
            logger.error(f"{self.provider} completion failed: {e}")
            raise ProviderError(self.provider, f"request failed: {e}") from e
        except ValueError as e:
            raise ProviderError(self.provider, f"invalid JSON: {e}") from e

        try:
            content, prompt_tokens, completion_tokens = self._parse(data)
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(self.provider, f"unexpected response shape: {e}") from e

        return CompletionResult(
            content=content,
            provider=self.provider,
            model=self.model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            latency_ms=(time.monotonic() - start) * 1000,
        )

    async def chat_async(self, *args, **kwargs) -> CompletionResult:
        """Async wrapper -- runs chat() in a thread pool to avoid blocking the event loop."""
        return await asyncio.to_thread(self.chat, *args, **kwargs)

    def is_available(self) -> bool:
        """Check if a local ollama server is reachable; hosted providers need a key."""
        if self.provider != "ollama":
            return self.has_credentials
        try:
            with httpx.Client(timeout=5.0, transport=self._transport) as client:
                resp = client.get(f"{self.base_url}/api/tags")
                return resp.status_code == 200
        except httpx.HTTPError:
            return False


def build_clients(
    api_keys: Dict[str, str],
    models: Optional[Dict[str, str]] = None,
    ollama_host: Optional[str] = None,
    max_tokens: int = 2000,
    temperature: float = 0.7,
) -> Dict[str, CompletionClient]:
    """One client per known provider, keyed by provider name."""
    models = models or {}
    clients = {}
    for name in DEFAULT_URLS:
        clients[name] = CompletionClient(
            provider=name,
            api_key=api_keys.get(name, ""),
            model=models.get(name),
            base_url=ollama_host if name == "ollama" else None,
            max_tokens=max_tokens,
            temperature=temperature,
        )
    return clients
