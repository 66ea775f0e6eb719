"""LLM client for content generation.

Provides a unified interface for chat completions against OpenAI and
OpenAI-compatible servers (LM Studio, Anthropic's compatible endpoint).

Supported providers:
- lmstudio: Local LM Studio server
- openai: OpenAI API
- anthropic: Anthropic API (via OpenAI-compatible endpoint)
"""

from __future__ import annotations

import json
import os
import re
import time
from dataclasses import dataclass, field
from typing import Any, Literal

import structlog
from openai import APIConnectionError, APITimeoutError, OpenAI

from practice.config.app_config import AppConfig

logger = structlog.get_logger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

Provider = Literal["lmstudio", "openai", "anthropic"]

# Provider-specific defaults
PROVIDER_DEFAULTS: dict[str, dict[str, Any]] = {
    "lmstudio": {
        "base_url": "http://localhost:1234/v1",
        "api_key": "lm-studio",  # LM Studio doesn't need a real key
    },
    "openai": {
        "base_url": "https://api.openai.com/v1",
        "api_key_env": "OPENAI_API_KEY",
    },
    "anthropic": {
        "base_url": "https://api.anthropic.com/v1",
        "api_key_env": "ANTHROPIC_API_KEY",
    },
}

# Whether the provider accepts response_format={"type": "json_object"}
PROVIDER_CAPABILITIES_DEFAULTS: dict[str, dict[str, bool]] = {
    "lmstudio": {"supports_json_object": False},
    "openai": {"supports_json_object": True},
    "anthropic": {"supports_json_object": False},
}

# Some models emit <think>...</think> blocks that break JSON parsing
SANITIZE_PATTERNS = [
    re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<analysis>.*?</analysis>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<reasoning>.*?</reasoning>", re.DOTALL | re.IGNORECASE),
]


def _sanitize_for_json(text: str) -> str:
    """Remove thinking/reasoning tags before JSON parsing."""
    result = text
    for pattern in SANITIZE_PATTERNS:
        result = pattern.sub("", result)
    return result.strip()


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class LLMConfig:
    """Configuration for LLM client."""

    provider: Provider = "openai"
    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4o-mini"
    temperature: float = 0.8
    max_tokens: int = 3000
    timeout: float = 8.0
    # Retries belong to background jobs, not to a request in flight
    max_retries: int = 0
    api_key: str | None = None
    supports_json_object: bool | None = None

    @classmethod
    def from_app_config(cls, app_config: AppConfig) -> LLMConfig:
        """Build client settings from the generator section of the app config."""
        gen = app_config.generator
        provider = gen.provider
        defaults = PROVIDER_DEFAULTS.get(provider, {})
        provider_config = app_config.providers.get(provider)

        base_url = defaults.get("base_url", "")
        if provider_config is not None and provider_config.base_url:
            base_url = provider_config.base_url

        api_key = None
        if provider_config is not None and provider_config.api_key_env:
            api_key = provider_config.get_api_key()
        elif "api_key_env" in defaults:
            api_key = os.environ.get(defaults["api_key_env"])
        elif "api_key" in defaults:
            api_key = defaults["api_key"]

        return cls(
            provider=provider,
            base_url=base_url,
            model=gen.model,
            temperature=gen.temperature,
            max_tokens=gen.max_tokens,
            timeout=gen.timeout_seconds,
            api_key=api_key,
        )


@dataclass
class Message:
    """A chat message."""

    role: Literal["system", "user", "assistant"]
    content: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for API call."""
        return {"role": self.role, "content": self.content}


@dataclass
class LLMResponse:
    """Response from LLM."""

    content: str
    model: str
    provider: str
    usage: dict[str, int] = field(default_factory=dict)
    latency_ms: int = 0

    @property
    def total_tokens(self) -> int:
        """Get total token count."""
        return self.usage.get("total_tokens", 0)


class LLMError(Exception):
    """Error during LLM interaction."""

    pass


class LLMConnectionError(LLMError):
    """Error connecting to LLM server."""

    pass


class LLMTimeoutError(LLMConnectionError):
    """LLM server did not answer within the configured timeout."""

    pass


class LLMResponseError(LLMError):
    """Error in LLM response."""

    pass


# =============================================================================
# LLM CLIENT
# =============================================================================


class LLMClient:
    """Unified client for LLM interactions."""

    def __init__(self, config: LLMConfig | None = None):
        """Initialize LLM client.

        Args:
            config: LLM configuration (defaults when not provided)
        """
        self.config = config or LLMConfig()

        self._client = OpenAI(
            base_url=self.config.base_url,
            api_key=self.config.api_key or "not-needed",
            timeout=self.config.timeout,
            max_retries=self.config.max_retries,
        )

        logger.info(
            "llm_client_initialized",
            provider=self.config.provider,
            model=self.config.model,
            base_url=self.config.base_url,
            timeout=self.config.timeout,
        )

    def _supports_json_object(self) -> bool:
        """Check if current provider supports response_format json_object."""
        if self.config.supports_json_object is not None:
            return self.config.supports_json_object

        caps = PROVIDER_CAPABILITIES_DEFAULTS.get(self.config.provider, {})
        return caps.get("supports_json_object", False)

    def chat(
        self,
        messages: list[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """Send chat completion request.

        Args:
            messages: List of messages in conversation
            temperature: Override default temperature
            max_tokens: Override default max tokens
            json_mode: Request JSON response format (only if provider supports it)

        Returns:
            LLMResponse with content and metadata

        Raises:
            LLMTimeoutError: If the server does not answer in time
            LLMConnectionError: If cannot connect to server
            LLMResponseError: If response is invalid
        """
        if temperature is None:
            temperature = self.config.temperature
        if max_tokens is None:
            max_tokens = self.config.max_tokens

        request_kwargs: dict[str, Any] = {
            "model": self.config.model,
            "messages": [m.to_dict() for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        if json_mode and self._supports_json_object():
            request_kwargs["response_format"] = {"type": "json_object"}

        start_time = time.time()

        try:
            response = self._client.chat.completions.create(**request_kwargs)
        except APITimeoutError as e:
            raise LLMTimeoutError(
                f"{self.config.provider} did not answer within {self.config.timeout}s"
            ) from e
        except APIConnectionError as e:
            raise LLMConnectionError(
                f"Could not connect to {self.config.provider} at {self.config.base_url}: {e}"
            ) from e
        except Exception as e:
            raise LLMError(f"LLM call failed: {e}") from e

        latency_ms = int((time.time() - start_time) * 1000)

        if not response.choices:
            raise LLMResponseError("Empty response from LLM")

        content = response.choices[0].message.content or ""

        usage = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        logger.debug(
            "llm_response",
            provider=self.config.provider,
            model=response.model,
            tokens=usage.get("total_tokens", 0),
            latency_ms=latency_ms,
        )

        return LLMResponse(
            content=content,
            model=response.model,
            provider=self.config.provider,
            usage=usage,
            latency_ms=latency_ms,
        )

    def _try_parse_json(self, content: str) -> dict[str, Any] | None:
        """Try to parse a JSON object from content.

        Tries:
        1. Direct parse
        2. Extract from ```json ... ``` blocks
        3. Extract first {...} object

        Returns parsed dict or None if all strategies fail.
        """
        content = _sanitize_for_json(content)

        candidates = [content]

        json_match = re.search(r"```(?:json)?\s*([\s\S]*?)```", content)
        if json_match:
            candidates.append(json_match.group(1).strip())

        start = content.find("{")
        end = content.rfind("}") + 1
        if start >= 0 and end > start:
            candidates.append(content[start:end])

        for candidate in candidates:
            try:
                parsed = json.loads(candidate)
            except json.JSONDecodeError:
                continue
            if isinstance(parsed, dict):
                return parsed

        return None

    def simple_json(
        self,
        system_prompt: str,
        user_message: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> dict[str, Any]:
        """Single-turn chat expecting a JSON object back.

        No repair round-trip: a request in flight gets one call.

        Raises:
            LLMResponseError: If the response is not a JSON object
        """
        messages = [
            Message(role="system", content=system_prompt),
            Message(role="user", content=user_message),
        ]

        response = self.chat(
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=True,
        )

        parsed = self._try_parse_json(response.content)
        if parsed is None:
            raise LLMResponseError(f"No valid JSON in response: {response.content[:200]}...")

        return parsed
