"""Daily Review - summarize a developer's day from notes and local git history.

Library API for external projects:

    from daily_review import scan, review, AiSettings, ReviewMode

    result = scan(["~/src/api"], deep_analysis=True)
    outcome = review(
        ReviewMode.EXPORT, ["Fixed flaky login test"], result.commits,
        rules="", template="**Done today**\\n* ...",
        settings=AiSettings(provider="gemini", model="gemini-1.5-flash", api_key="..."),
    )
"""

__version__ = "0.1.0"

from daily_review.aggregator import ActivityAggregator
from daily_review.ai import (
    AiFailure,
    AiFailureKind,
    AiGateway,
    AiProvider,
    AiRequest,
    AiResult,
    AiSettings,
    AiSuccess,
    ReviewMode,
    build_review_prompt,
)
from daily_review.config import AppConfig, Config
from daily_review.errors import (
    ConfigurationError,
    DailyReviewError,
    DiffUnavailableError,
    NoteStoreError,
    OperationCanceledError,
    RepositoryCorruptError,
    RepositoryError,
    RepositoryNotFoundError,
)
from daily_review.library import review, review_activity, scan, scan_activity
from daily_review.models import ActivityWindow, Commit, RepositoryRef, ScanResult
from daily_review.progress import ProgressCallback, ProgressEvent, ProgressEventType

__all__ = [
    # Operations
    "scan",
    "scan_activity",
    "review",
    "review_activity",
    # Core classes
    "ActivityAggregator",
    "AiGateway",
    "build_review_prompt",
    # Data model
    "ActivityWindow",
    "Commit",
    "RepositoryRef",
    "ScanResult",
    "AiProvider",
    "AiSettings",
    "AiRequest",
    "AiResult",
    "AiSuccess",
    "AiFailure",
    "AiFailureKind",
    "ReviewMode",
    # Configuration
    "AppConfig",
    "Config",
    # Progress
    "ProgressCallback",
    "ProgressEvent",
    "ProgressEventType",
    # Exceptions
    "DailyReviewError",
    "ConfigurationError",
    "RepositoryError",
    "RepositoryNotFoundError",
    "RepositoryCorruptError",
    "DiffUnavailableError",
    "NoteStoreError",
    "OperationCanceledError",
    # Metadata
    "__version__",
]
