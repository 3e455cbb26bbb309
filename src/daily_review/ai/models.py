"""Provider-independent request and result types for the AI gateway."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, SecretStr, field_validator


class AiProvider(str, Enum):
    """Supported AI services."""

    OPENAI_COMPATIBLE = "openai-compatible"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"

    @classmethod
    def parse(cls, value: Any) -> AiProvider:
        """Parse a provider identifier, accepting common aliases such as ``openai``."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("_", "-")
        aliases = {
            "openai": cls.OPENAI_COMPATIBLE,
            "claude": cls.ANTHROPIC,
            "google": cls.GEMINI,
        }
        if normalized in aliases:
            return aliases[normalized]
        try:
            return cls(normalized)
        except ValueError:
            choices = ", ".join(p.value for p in cls)
            raise ValueError(
                f"Unknown AI provider '{value}'. Use one of: {choices}"
            ) from None


class AiSettings(BaseModel):
    """Provider, model and credentials used for a review, without the prompt."""

    model_config = ConfigDict(frozen=True)

    provider: AiProvider = AiProvider.OPENAI_COMPATIBLE
    model: str
    api_key: SecretStr
    base_url: str | None = None

    @field_validator("provider", mode="before")
    @classmethod
    def parse_provider(cls, v: Any) -> AiProvider:
        return AiProvider.parse(v)

    @field_validator("base_url")
    @classmethod
    def blank_base_url_is_default(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v

    def to_request(self, prompt: str) -> AiRequest:
        return AiRequest(
            provider=self.provider,
            model=self.model,
            api_key=self.api_key,
            base_url=self.base_url,
            prompt=prompt,
        )


class AiRequest(AiSettings):
    """A complete, self-contained request for one AI completion."""

    prompt: str


class AiFailureKind(str, Enum):
    """Why an AI call did not produce text."""

    TIMEOUT = "timeout"
    PROVIDER_ERROR = "provider_error"
    PROTOCOL_ERROR = "protocol_error"
    CANCELED = "canceled"


_FAILURE_LABELS = {
    AiFailureKind.TIMEOUT: "AI request timed out",
    AiFailureKind.PROVIDER_ERROR: "AI provider returned an error",
    AiFailureKind.PROTOCOL_ERROR: "Unexpected response from AI provider",
    AiFailureKind.CANCELED: "AI request canceled",
}


class AiSuccess(BaseModel):
    """Complete text returned by the provider."""

    model_config = ConfigDict(frozen=True)

    ok: Literal[True] = True
    text: str


class AiFailure(BaseModel):
    """Typed failure of a single AI call."""

    model_config = ConfigDict(frozen=True)

    ok: Literal[False] = False
    kind: AiFailureKind
    message: str = ""
    status_code: int | None = None

    def describe(self) -> str:
        """Single actionable message for display."""
        label = _FAILURE_LABELS[self.kind]
        if self.status_code is not None:
            label += f" (HTTP {self.status_code})"
        return f"{label}: {self.message}" if self.message else label


AiResult = AiSuccess | AiFailure
