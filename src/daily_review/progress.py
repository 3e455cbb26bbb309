"""Progress callback system for daily-review.

Scans and configuration changes report what they are doing through a plain
callback so the CLI (or any other front end) can render progress in its own
way without the library knowing about terminals.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ProgressEventType(Enum):
    """Types of progress events that can be emitted."""

    STARTED = "started"
    PROGRESS = "progress"
    COMPLETED = "completed"
    WARNING = "warning"
    INFO = "info"


@dataclass
class ProgressEvent:
    """A progress event containing update information.

    Attributes:
        event_type: The type of progress event
        message: Human-readable description of the current progress
        current: Current progress value (optional)
        total: Total expected progress value (optional)
        metadata: Additional context data (optional)
    """

    event_type: ProgressEventType
    message: str
    current: int | None = None
    total: int | None = None
    metadata: dict[str, Any] | None = None


ProgressCallback = Callable[[ProgressEvent], None]


class ProgressNotifier:
    """Helper class for emitting progress events."""

    def __init__(self, callback: ProgressCallback | None = None) -> None:
        self.callback = callback

    def notify(self, event: ProgressEvent) -> None:
        """Emit a progress event if a callback is registered."""
        if self.callback:
            self.callback(event)

    def started(self, message: str, **kwargs: Any) -> None:
        self.notify(
            ProgressEvent(
                event_type=ProgressEventType.STARTED,
                message=message,
                metadata=kwargs or None,
            )
        )

    def progress(
        self,
        message: str,
        current: int | None = None,
        total: int | None = None,
        **kwargs: Any,
    ) -> None:
        """Emit a PROGRESS event.

        Args:
            message: Description of current progress
            current: Current progress value
            total: Total expected progress value
            **kwargs: Additional metadata
        """
        self.notify(
            ProgressEvent(
                event_type=ProgressEventType.PROGRESS,
                message=message,
                current=current,
                total=total,
                metadata=kwargs or None,
            )
        )

    def completed(self, message: str, **kwargs: Any) -> None:
        self.notify(
            ProgressEvent(
                event_type=ProgressEventType.COMPLETED,
                message=message,
                metadata=kwargs or None,
            )
        )

    def warning(self, message: str, **kwargs: Any) -> None:
        """Emit a WARNING event for a non-fatal problem (e.g. an unreadable repository)."""
        self.notify(
            ProgressEvent(
                event_type=ProgressEventType.WARNING,
                message=message,
                metadata=kwargs or None,
            )
        )

    def info(self, message: str, **kwargs: Any) -> None:
        self.notify(
            ProgressEvent(
                event_type=ProgressEventType.INFO,
                message=message,
                metadata=kwargs or None,
            )
        )
