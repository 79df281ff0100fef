"""LLM client and response parsing utilities.

LLMClient talks to OpenAI directly or to OpenRouter through its
OpenAI-compatible endpoint. Model ids containing a slash
(``anthropic/claude-sonnet-4``) are OpenRouter ids; bare ids
(``gpt-4o``) go to OpenAI.
"""

import json
import logging
import re
from typing import Optional

from openai import AsyncOpenAI

from config.exceptions import LLMConfigurationError, LLMError, LLMResponseParseError
from config.settings import Settings, get_settings
from models.enums import Provider

logger = logging.getLogger(__name__)

# Precompiled regex for JSON extraction
_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)

# Lenient decoder that allows control characters (raw newlines, tabs) inside
# JSON strings; LLMs frequently produce these instead of proper \n escapes.
_LENIENT_DECODER = json.JSONDecoder(strict=False)


def _try_loads(text: str) -> dict:
    """Try parsing JSON, first strictly then leniently."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    try:
        return _LENIENT_DECODER.decode(text)
    except json.JSONDecodeError:
        pass
    raise json.JSONDecodeError("", text, 0)


def _ensure_dict(result) -> dict:
    """Ensure the parsed JSON result is a dict.

    LLMs sometimes return a JSON array when a dict is expected.
    If we get a list, use the first dict element; otherwise wrap it.
    """
    if isinstance(result, dict):
        return result
    if isinstance(result, list):
        for item in result:
            if isinstance(item, dict):
                return item
        return {"items": result}
    return {"value": result}


def parse_json_response(text: str) -> dict:
    """Extract and parse JSON from LLM response text.

    Handles JSON wrapped in markdown code fences or surrounded by prose,
    and tolerates unescaped newlines inside string values.

    Raises:
        ValueError: If no JSON object can be recovered.
    """
    text = (text or "").strip()

    try:
        return _ensure_dict(_try_loads(text))
    except json.JSONDecodeError:
        pass

    match = _JSON_FENCE_RE.search(text)
    if match:
        try:
            return _ensure_dict(_try_loads(match.group(1).strip()))
        except json.JSONDecodeError:
            pass

    for start_char, end_char in [("{", "}"), ("[", "]")]:
        start = text.find(start_char)
        end = text.rfind(end_char)
        if start != -1 and end != -1 and end > start:
            try:
                return _ensure_dict(_try_loads(text[start:end + 1]))
            except json.JSONDecodeError:
                continue

    raise ValueError(f"Failed to parse JSON from LLM response: {text[:200]}...")


def resolve_provider(model: str) -> Provider:
    """Return the provider that serves a model id."""
    return Provider.OPENROUTER if "/" in model else Provider.OPENAI


class LLMClient:
    """Async chat client routed by model id.

    Provider clients are created lazily, so a missing key only fails the
    request that needs it.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.total_calls = 0
        self.calls_by_model: dict[str, int] = {}
        self._clients: dict[Provider, AsyncOpenAI] = {}

    def is_provider_available(self, provider: Provider) -> bool:
        if provider == Provider.OPENAI:
            return bool(self.settings.openai_api_key)
        if provider == Provider.OPENROUTER:
            return bool(self.settings.openrouter_api_key)
        return False

    def default_model(self, purpose: str = "outline") -> str:
        """Default model for 'outline' or 'chapter' generation.

        Falls back to the OpenAI models when OpenRouter has no key.
        """
        if purpose not in ("outline", "chapter"):
            raise ValueError(f"Unknown generation purpose: {purpose}")
        if self.is_provider_available(Provider.OPENROUTER):
            return (self.settings.default_outline_model if purpose == "outline"
                    else self.settings.default_chapter_model)
        return (self.settings.openai_outline_model if purpose == "outline"
                else self.settings.openai_chapter_model)

    def _get_client(self, provider: Provider) -> AsyncOpenAI:
        if provider in self._clients:
            return self._clients[provider]

        if provider == Provider.OPENROUTER:
            if not self.settings.openrouter_api_key:
                raise LLMConfigurationError(
                    "OpenRouter is not configured. Please set OPENROUTER_API_KEY (missing API key)."
                )
            client = AsyncOpenAI(
                api_key=self.settings.openrouter_api_key,
                base_url=self.settings.openrouter_base_url,
                timeout=self.settings.llm_timeout,
                default_headers={
                    "HTTP-Referer": self.settings.app_url,
                    "X-Title": self.settings.app_title,
                },
            )
        elif provider == Provider.OPENAI:
            if not self.settings.openai_api_key:
                raise LLMConfigurationError(
                    "OpenAI is not configured. Please set OPENAI_API_KEY (missing API key)."
                )
            client = AsyncOpenAI(
                api_key=self.settings.openai_api_key,
                timeout=self.settings.llm_timeout,
            )
        else:
            raise LLMConfigurationError(f"Unknown provider: {provider}")

        logger.info("Initialized %s provider", provider.value)
        self._clients[provider] = client
        return client

    async def chat(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Send a single system+user exchange and return the text reply.

        Raises:
            LLMConfigurationError: If the model's provider has no API key.
            LLMError: If the request fails.
        """
        provider = resolve_provider(model)
        client = self._get_client(provider)
        self.total_calls += 1
        self.calls_by_model[model] = self.calls_by_model.get(model, 0) + 1

        logger.debug("LLM call: provider=%s model=%s", provider.value, model)

        kwargs = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        if temperature is not None:
            kwargs["temperature"] = temperature
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        try:
            response = await client.chat.completions.create(**kwargs)
        except Exception as e:
            raise LLMError(f"{provider.value} request failed: {e}", {"model": model}) from e

        text = ""
        if response.choices:
            text = response.choices[0].message.content or ""
        if not text:
            logger.warning("LLM returned no content for model %s", model)
        else:
            logger.debug("LLM result: %d chars", len(text))
        return text

    async def chat_json(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str,
        temperature: Optional[float] = None,
    ) -> dict:
        """Send a request and parse the response as JSON.

        Raises:
            LLMResponseParseError: If response cannot be parsed as JSON.
        """
        text = await self.chat(system_prompt, user_prompt, model, temperature)
        try:
            return parse_json_response(text)
        except ValueError as e:
            raise LLMResponseParseError(str(e), raw_response=text) from e

    def get_usage_summary(self) -> dict:
        """Return call count statistics."""
        return {"total_calls": self.total_calls, "by_model": dict(self.calls_by_model)}
