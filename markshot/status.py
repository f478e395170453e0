"""
Screenshot status tracking for markshot.

Provides the persisted screenshot states of a bookmark and the result
object a capture attempt hands back to the task layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ScreenshotStatus(str, Enum):
    """Persisted screenshot state of a bookmark.

    ``capturing`` exists only while a job runs and is never written.
    """

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    def is_terminal(self) -> bool:
        """Check if no automatic transition can leave this status."""
        return self in (ScreenshotStatus.COMPLETED, ScreenshotStatus.FAILED)

    @classmethod
    def parse(cls, value: Optional[str]) -> "ScreenshotStatus":
        """Read a stored status, treating missing or legacy values as pending."""
        try:
            return cls(value)
        except ValueError:
            return cls.PENDING


class AttemptOutcome(str, Enum):
    """What happened to one capture attempt."""

    COMPLETED = "completed"
    RETRY_SCHEDULED = "retry_scheduled"
    FAILED = "failed"
    SKIPPED = "skipped"  # Record gone or no longer pending


@dataclass
class CaptureAttemptResult:
    """Result of a single capture attempt."""

    bookmark_id: str
    outcome: AttemptOutcome
    retries: int = 0
    retry_delay: Optional[float] = None
    screenshot_url: Optional[str] = None
    screenshot_path: Optional[str] = None
    error: Optional[str] = None

    @property
    def should_reschedule(self) -> bool:
        return self.outcome is AttemptOutcome.RETRY_SCHEDULED

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "bookmark_id": self.bookmark_id,
            "outcome": self.outcome.value,
            "retries": self.retries,
            "retry_delay": self.retry_delay,
            "screenshot_url": self.screenshot_url,
            "screenshot_path": self.screenshot_path,
            "error": self.error,
        }
