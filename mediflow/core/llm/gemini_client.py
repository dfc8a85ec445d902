"""
Gemini API Client

Thin async wrapper around the Gemini ``generateContent`` REST endpoint.
One call per request, no retries: retry policy belongs to the caller.
Every failure is raised as a gateway error, never swallowed.
"""
from dataclasses import dataclass
from typing import Dict, Any, Optional
from enum import Enum
from datetime import datetime

import httpx

from mediflow.config import Settings, get_settings, DEFAULT_TIMEOUT_SECONDS, GEMINI_BASE_URL
from mediflow.utils import get_logger, ConfigurationError, TransportError, EmptyGenerationError

logger = get_logger(__name__)


class GeminiModel(str, Enum):
    """Gemini models known to work with the analysis prompt."""
    FLASH_2_5 = "gemini-2.5-flash"  # Stable standard
    FLASH_2_5_LITE = "gemini-2.5-flash-lite"
    PRO_2_5 = "gemini-2.5-pro"
    FLASH_2_0 = "gemini-2.0-flash"


@dataclass
class GeminiConfig:
    """Configuration for Gemini client."""
    # None means "look up GEMINI_API_KEY at call time"
    api_key: Optional[str] = None
    model: str = GeminiModel.FLASH_2_5.value
    base_url: str = GEMINI_BASE_URL

    # Low randomness biases the model toward well-formed JSON
    temperature: float = 0.3
    top_k: int = 32
    top_p: float = 1.0
    max_output_tokens: int = 1024

    request_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "GeminiConfig":
        # The key is left unresolved so each call sees the current environment
        settings = settings or get_settings()
        return cls(
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            request_timeout_seconds=settings.gemini_timeout_seconds,
        )

    def resolve_api_key(self) -> Optional[str]:
        return self.api_key or get_settings().gemini_api_key

    def generation_config(self) -> Dict[str, Any]:
        return {
            "temperature": self.temperature,
            "topK": self.top_k,
            "topP": self.top_p,
            "maxOutputTokens": self.max_output_tokens,
        }


@dataclass
class GeminiResponse:
    """Generated text plus call metadata."""
    text: str
    model: str
    finish_reason: str = "STOP"
    prompt_tokens: int = 0
    completion_tokens: int = 0
    latency_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "model": self.model,
            "finish_reason": self.finish_reason,
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "latency_ms": round(self.latency_ms, 2),
        }


def extract_generated_text(data: Any) -> Optional[str]:
    """Return ``candidates[0].content.parts[0].text`` or None when any hop is missing."""
    if not isinstance(data, dict):
        return None
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return None
    content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list) or not parts or not isinstance(parts[0], dict):
        return None
    text = parts[0].get("text")
    return text if isinstance(text, str) else None


class GeminiClient:
    """
    Client for the Gemini REST API.

    Pass ``http_client`` to reuse a connection pool or to stub the network
    (e.g. ``httpx.AsyncClient(transport=httpx.MockTransport(handler))``).
    """

    def __init__(
        self,
        config: Optional[GeminiConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.config = config or GeminiConfig.from_settings()
        self._http_client = http_client

    @property
    def is_configured(self) -> bool:
        """True when a credential is available right now."""
        return bool(self.config.resolve_api_key())

    def _endpoint(self) -> str:
        return f"{self.config.base_url.rstrip('/')}/models/{self.config.model}:generateContent"

    def _build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": self.config.generation_config(),
        }

    async def generate(self, prompt: str) -> GeminiResponse:
        """
        Send one prompt and return the generated text.

        Raises:
            ConfigurationError: no API key configured
            TransportError: network failure, timeout, or non-2xx status
            EmptyGenerationError: response carried no generated text
        """
        api_key = self.config.resolve_api_key()
        if not api_key:
            raise ConfigurationError("GEMINI_API_KEY is not set", setting="GEMINI_API_KEY")

        start_time = datetime.now()
        if self._http_client is not None:
            response = await self._post(self._http_client, prompt, api_key)
        else:
            async with httpx.AsyncClient(timeout=self.config.request_timeout_seconds) as client:
                response = await self._post(client, prompt, api_key)
        latency = (datetime.now() - start_time).total_seconds() * 1000

        if not response.is_success:
            logger.error(f"Gemini API error {response.status_code}: {response.text[:500]}")
            raise TransportError(
                f"Gemini API error: {response.status_code}",
                upstream_status=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise EmptyGenerationError(
                "No response from Gemini API",
                details={"reason": f"body is not JSON: {e}"}
            ) from e

        text = extract_generated_text(data)
        if not text:
            raise EmptyGenerationError("No response from Gemini API")

        usage = data.get("usageMetadata") or {}
        candidate = data["candidates"][0]
        logger.debug(f"Gemini responded in {latency:.0f} ms ({len(text)} chars)")

        return GeminiResponse(
            text=text,
            model=self.config.model,
            finish_reason=candidate.get("finishReason", "STOP"),
            prompt_tokens=usage.get("promptTokenCount", 0),
            completion_tokens=usage.get("candidatesTokenCount", 0),
            latency_ms=latency,
        )

    async def _post(self, client: httpx.AsyncClient, prompt: str, api_key: str) -> httpx.Response:
        try:
            return await client.post(
                self._endpoint(),
                json=self._build_payload(prompt),
                headers={
                    "x-goog-api-key": api_key,
                    "Content-Type": "application/json",
                },
                timeout=self.config.request_timeout_seconds,
            )
        except httpx.TimeoutException as e:
            raise TransportError(
                f"Gemini API request timed out after {self.config.request_timeout_seconds:g}s",
                details={"reason": type(e).__name__}
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(
                f"Gemini API request failed: {e}",
                details={"reason": type(e).__name__}
            ) from e
