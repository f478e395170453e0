"""
Fake implementations for testing.

This package contains fake (test double) implementations of core interfaces.
Fakes are simplified working implementations that behave like the real
components but avoid external services.

Key fakes:
- InMemoryBookmarkStorage: In-memory bookmark and tag store (no Firestore)
- InMemoryFileStorage: In-memory object store (no Cloud Storage)
- FakeCapturer, FailingCapturer, FlakyCapturer: Capture without a browser
- RecordingScheduler: Records enqueued captures instead of using Celery
- FakeWebsite: Canned pages for the metadata fetcher (no network)
"""

from .capture import (
    FailingCapturer,
    FakeCapturer,
    FlakyCapturer,
    RecordingScheduler,
    make_png,
)
from .storage import InMemoryBookmarkStorage, InMemoryFileStorage
from .web import FakeWebsite

__all__ = [
    "FailingCapturer",
    "FakeCapturer",
    "FakeWebsite",
    "FlakyCapturer",
    "InMemoryBookmarkStorage",
    "InMemoryFileStorage",
    "RecordingScheduler",
    "make_png",
]
