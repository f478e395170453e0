from __future__ import annotations

from dataclasses import dataclass

from ..core.config import RetrySettings


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff for screenshot capture attempts.

    ``attempt`` counts failures already recorded on the bookmark, so the
    first retry waits ``base_delay`` seconds, the second twice that, and so
    on up to ``max_delay``.
    """

    max_retries: int = 3
    base_delay: float = 30.0
    max_delay: float = 600.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays must be >= 0")

    @classmethod
    def from_settings(cls, settings: RetrySettings) -> "RetryPolicy":
        return cls(
            max_retries=settings.max_retries,
            base_delay=settings.base_delay_seconds,
            max_delay=settings.max_delay_seconds,
        )

    def delay_for(self, attempt: int) -> float:
        """Backoff before the retry that follows ``attempt`` earlier failures."""
        attempt = max(0, attempt)
        # Clamp the exponent so huge attempt counts cannot overflow
        return min(self.base_delay * (2 ** min(attempt, 32)), self.max_delay)

    def can_retry(self, retries: int) -> bool:
        """Check whether a record with ``retries`` recorded failures may run again."""
        return retries < self.max_retries
