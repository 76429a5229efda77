"""Completion providers: the external text-completion service behind the extractor.

Each provider takes a CompletionRequest and returns a CompletionResponse whose
candidates carry the raw text the model produced. Transport and provider-side
failures are raised as ProviderError; parsing is the extractor's job.
"""
import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Optional

import anthropic
import httpx

from config import Settings
from errors import ProviderConfigError, ProviderError
from models import Candidate, CompletionRequest, CompletionResponse

logger = logging.getLogger(__name__)

# Status codes worth retrying; everything else (auth, bad request) is final
TRANSIENT_STATUS_CODES = {408, 409, 429, 500, 502, 503, 504}

STRUCTURED_OUTPUT_TOOL = "record_task"


class CompletionProvider(ABC):
    @abstractmethod
    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


class AnthropicProvider(CompletionProvider):
    """Claude via the Messages API.

    Structured output is requested by forcing a single tool call whose input
    schema is the task record; the tool input is handed back as JSON text.
    Timeout and retries are delegated to the SDK client.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        max_retries: int = 0,
        client: Optional[anthropic.AsyncAnthropic] = None,
    ):
        if client is None:
            if not api_key:
                raise ProviderConfigError("ANTHROPIC_API_KEY is missing")
            client = anthropic.AsyncAnthropic(api_key=api_key, timeout=timeout, max_retries=max_retries)
        self._client = client

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        system = "\n\n".join(m.content for m in request.messages if m.role == "system")
        messages = [{"role": m.role, "content": m.content} for m in request.messages if m.role != "system"]

        kwargs = {
            "model": request.model,
            "max_tokens": request.max_tokens,
            "messages": messages,
        }
        if system:
            kwargs["system"] = system
        if request.json_output:
            kwargs["tools"] = [{
                "name": STRUCTURED_OUTPUT_TOOL,
                "description": "Record the parsed task.",
                "input_schema": request.json_schema or {"type": "object"},
            }]
            kwargs["tool_choice"] = {"type": "tool", "name": STRUCTURED_OUTPUT_TOOL}

        try:
            response = await self._client.messages.create(**kwargs)
        except anthropic.APIStatusError as e:
            raise ProviderError(f"Anthropic API error: {e}", status_code=e.status_code,
                                transient=e.status_code in TRANSIENT_STATUS_CODES) from e
        except anthropic.APIError as e:
            # Connection errors and timeouts
            raise ProviderError(f"Anthropic API error: {e}", transient=True) from e

        return CompletionResponse(candidates=[Candidate(content=_anthropic_content(response, request.json_output))])

    async def aclose(self) -> None:
        await self._client.close()


def _anthropic_content(response, json_output: bool) -> Optional[str]:
    blocks = getattr(response, "content", None) or []
    if json_output:
        for block in blocks:
            if getattr(block, "type", None) == "tool_use":
                return json.dumps(block.input)
    for block in blocks:
        if getattr(block, "type", None) == "text":
            return block.text
    return None


class OpenAIProvider(CompletionProvider):
    """OpenAI-compatible /chat/completions endpoint over httpx."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 30.0,
        max_retries: int = 0,
        retry_backoff_s: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ProviderConfigError("OPENAI_API_KEY is missing")
        self.max_retries = max_retries
        self.retry_backoff_s = retry_backoff_s
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
        )

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        payload = {
            "model": request.model,
            "messages": [{"role": m.role, "content": m.content} for m in request.messages],
            "max_completion_tokens": request.max_tokens,
        }
        if request.json_output:
            payload["response_format"] = {"type": "json_object"}

        data = await self._post_with_retries("/chat/completions", payload)

        if not isinstance(data, dict):
            raise ProviderError(f"Provider returned an unexpected body: {type(data).__name__}")
        choices = data.get("choices") or []
        if not isinstance(choices, list):
            raise ProviderError("Provider returned non-list choices")

        candidates = []
        for choice in choices:
            message = choice.get("message") if isinstance(choice, dict) else None
            content = message.get("content") if isinstance(message, dict) else None
            # Non-text content (e.g. content parts) carries no usable payload
            candidates.append(Candidate(content=content if isinstance(content, str) else None))
        return CompletionResponse(candidates=candidates)

    async def _post_with_retries(self, path: str, payload: dict) -> dict:
        attempt = 0
        while True:
            try:
                return await self._post(path, payload)
            except ProviderError as e:
                if not e.transient or attempt >= self.max_retries:
                    raise
                delay = self.retry_backoff_s * (2 ** attempt)
                attempt += 1
                logger.warning("Provider call failed (%s), retry %d/%d in %.2fs",
                               e, attempt, self.max_retries, delay)
                await asyncio.sleep(delay)

    async def _post(self, path: str, payload: dict) -> dict:
        try:
            r = await self._client.post(path, json=payload)
        except httpx.TransportError as e:
            raise ProviderError(f"Provider request failed: {e!r}", transient=True) from e

        if r.status_code >= 400:
            raise ProviderError(
                f"Provider returned HTTP {r.status_code}: {r.text[:200]}",
                status_code=r.status_code,
                transient=r.status_code in TRANSIENT_STATUS_CODES,
            )
        try:
            return r.json()
        except ValueError as e:
            raise ProviderError("Provider returned a non-JSON body") from e

    async def aclose(self) -> None:
        await self._client.aclose()


def build_provider(settings: Settings) -> CompletionProvider:
    """Construct the configured provider. Called once at startup."""
    if settings.llm_provider == "anthropic":
        return AnthropicProvider(
            api_key=settings.anthropic_api_key,
            timeout=settings.llm_timeout_s,
            max_retries=settings.llm_max_retries,
        )
    if settings.llm_provider == "openai":
        return OpenAIProvider(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            timeout=settings.llm_timeout_s,
            max_retries=settings.llm_max_retries,
            retry_backoff_s=settings.llm_retry_backoff_s,
        )
    raise ProviderConfigError(f"Unknown LLM_PROVIDER: {settings.llm_provider!r}")
