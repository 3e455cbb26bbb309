"""Provider adapters for the AI gateway.

Each adapter owns three things for its provider: the request body shape,
where the API key goes, and how the reply body is turned into text. The
gateway looks adapters up by ``AiProvider`` and never branches on the
provider itself.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar

import httpx

from daily_review.ai.models import AiProvider, AiRequest

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.7
ANTHROPIC_VERSION = "2023-06-01"
ANTHROPIC_MAX_TOKENS = 4096


class ProtocolError(ValueError):
    """Raised when a provider reply does not have the expected shape."""


class ProviderAdapter(ABC):
    """Maps an AiRequest onto one provider's HTTP API."""

    provider: ClassVar[AiProvider]
    default_base_url: ClassVar[str]

    def base_url(self, request: AiRequest) -> str:
        return (request.base_url or self.default_base_url).rstrip("/")

    @abstractmethod
    def endpoint(self, request: AiRequest) -> str:
        """Full URL the request is posted to."""

    @abstractmethod
    def body(self, request: AiRequest) -> dict[str, Any]:
        """JSON body for the request."""

    @abstractmethod
    def parse_text(self, payload: Any) -> str:
        """Extract the reply text from a successful response body.

        Raises:
            ProtocolError: If the body does not have the expected shape
        """

    def headers(self, request: AiRequest) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    def params(self, request: AiRequest) -> dict[str, str]:
        return {}

    def error_message(self, payload: Any) -> str | None:
        """Provider error message from an error body, if there is one.

        OpenAI, Anthropic and Gemini all use ``{"error": {"message": ...}}``.
        """
        if not isinstance(payload, dict):
            return None
        error = payload.get("error")
        if isinstance(error, dict):
            message = error.get("message")
            return str(message) if message else None
        if isinstance(error, str) and error:
            return error
        return None

    def embedded_error(self, payload: Any) -> str | None:
        """Error reported inside a 2xx response body, if the provider does that."""
        return None

    def build_request(self, client: httpx.AsyncClient, request: AiRequest) -> httpx.Request:
        return client.build_request(
            "POST",
            self.endpoint(request),
            headers=self.headers(request),
            params=self.params(request),
            json=self.body(request),
        )


class OpenAICompatibleAdapter(ProviderAdapter):
    """Chat-completions API (OpenAI and compatible servers)."""

    provider = AiProvider.OPENAI_COMPATIBLE
    default_base_url = "https://api.openai.com/v1"

    def endpoint(self, request: AiRequest) -> str:
        return f"{self.base_url(request)}/chat/completions"

    def headers(self, request: AiRequest) -> dict[str, str]:
        return {
            **super().headers(request),
            "Authorization": f"Bearer {request.api_key.get_secret_value()}",
        }

    def body(self, request: AiRequest) -> dict[str, Any]:
        return {
            "model": request.model,
            "messages": [{"role": "user", "content": request.prompt}],
            "temperature": DEFAULT_TEMPERATURE,
        }

    def embedded_error(self, payload: Any) -> str | None:
        # Some compatible servers answer 200 with an error object
        if isinstance(payload, dict) and payload.get("error"):
            return self.error_message(payload) or str(payload["error"])
        return None

    def parse_text(self, payload: Any) -> str:
        try:
            content = payload["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProtocolError(f"missing choices[0].message.content ({e!r})") from e
        if not isinstance(content, str):
            raise ProtocolError("choices[0].message.content is not text")
        return content


class AnthropicAdapter(ProviderAdapter):
    """Anthropic Messages API."""

    provider = AiProvider.ANTHROPIC
    default_base_url = "https://api.anthropic.com/v1"

    def endpoint(self, request: AiRequest) -> str:
        return f"{self.base_url(request)}/messages"

    def headers(self, request: AiRequest) -> dict[str, str]:
        return {
            **super().headers(request),
            "x-api-key": request.api_key.get_secret_value(),
            "anthropic-version": ANTHROPIC_VERSION,
        }

    def body(self, request: AiRequest) -> dict[str, Any]:
        return {
            "model": request.model,
            "max_tokens": ANTHROPIC_MAX_TOKENS,
            "temperature": DEFAULT_TEMPERATURE,
            "messages": [{"role": "user", "content": request.prompt}],
        }

    def parse_text(self, payload: Any) -> str:
        try:
            blocks = payload["content"]
            texts = [
                block["text"]
                for block in blocks
                if block.get("type") == "text" and isinstance(block.get("text"), str)
            ]
        except (KeyError, TypeError, AttributeError) as e:
            raise ProtocolError(f"missing content blocks ({e!r})") from e
        if not texts:
            raise ProtocolError("reply contains no text content blocks")
        return "".join(texts)


class GeminiAdapter(ProviderAdapter):
    """Gemini generateContent API."""

    provider = AiProvider.GEMINI
    default_base_url = "https://generativelanguage.googleapis.com/v1beta"

    def endpoint(self, request: AiRequest) -> str:
        model = request.model.removeprefix("models/")
        return f"{self.base_url(request)}/models/{model}:generateContent"

    def params(self, request: AiRequest) -> dict[str, str]:
        return {"key": request.api_key.get_secret_value()}

    def body(self, request: AiRequest) -> dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": request.prompt}]}],
            "generationConfig": {"temperature": DEFAULT_TEMPERATURE},
        }

    def parse_text(self, payload: Any) -> str:
        try:
            candidates = payload["candidates"]
            parts = candidates[0]["content"]["parts"]
            texts = [part["text"] for part in parts if isinstance(part.get("text"), str)]
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            block_reason = None
            feedback = payload.get("promptFeedback") if isinstance(payload, dict) else None
            if isinstance(feedback, dict):
                block_reason = feedback.get("blockReason")
            if block_reason:
                raise ProtocolError(f"prompt blocked: {block_reason}") from e
            raise ProtocolError(f"missing candidates[0].content.parts ({e!r})") from e
        if not texts:
            raise ProtocolError("reply contains no text parts")
        return "".join(texts)


ADAPTERS: dict[AiProvider, ProviderAdapter] = {
    adapter.provider: adapter
    for adapter in (OpenAICompatibleAdapter(), AnthropicAdapter(), GeminiAdapter())
}


def get_adapter(provider: AiProvider | str) -> ProviderAdapter:
    return ADAPTERS[AiProvider.parse(provider)]
