from .job import ScreenshotJob
from .retry_policy import RetryPolicy

__all__ = ["RetryPolicy", "ScreenshotJob"]
