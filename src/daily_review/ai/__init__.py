"""AI integration module for daily-review.

Builds review prompts from aggregated activity and sends them to one of
several AI providers (OpenAI-compatible, Anthropic, Gemini) through a single
gateway that normalizes replies and errors.
"""

from .gateway import AiGateway
from .models import (
    AiFailure,
    AiFailureKind,
    AiProvider,
    AiRequest,
    AiResult,
    AiSettings,
    AiSuccess,
)
from .prompt import ReviewMode, build_review_prompt
from .providers import ProviderAdapter, get_adapter

__all__ = [
    "AiGateway",
    "AiProvider",
    "AiSettings",
    "AiRequest",
    "AiResult",
    "AiSuccess",
    "AiFailure",
    "AiFailureKind",
    "ReviewMode",
    "build_review_prompt",
    "ProviderAdapter",
    "get_adapter",
]
