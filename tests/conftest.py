from __future__ import annotations

from typing import Generator

import pytest

from markshot.core.config import CaptureSettings
from markshot.screenshots.job import ScreenshotJob
from markshot.screenshots.retry_policy import RetryPolicy
from markshot.services.bookmark_service import BookmarkService
from markshot.services.metadata import PageMetadataFetcher
from tests.fakes import (
    FakeCapturer,
    FakeWebsite,
    InMemoryBookmarkStorage,
    InMemoryFileStorage,
    RecordingScheduler,
)


@pytest.fixture()
def db_storage() -> InMemoryBookmarkStorage:
    return InMemoryBookmarkStorage()


@pytest.fixture()
def file_storage() -> InMemoryFileStorage:
    return InMemoryFileStorage()


@pytest.fixture()
def capturer() -> FakeCapturer:
    return FakeCapturer()


@pytest.fixture()
def retry_policy() -> RetryPolicy:
    return RetryPolicy(max_retries=3, base_delay=30.0, max_delay=600.0)


@pytest.fixture()
def capture_settings() -> CaptureSettings:
    return CaptureSettings(settle_ms=0)


@pytest.fixture()
def scheduler() -> RecordingScheduler:
    return RecordingScheduler()


@pytest.fixture()
def website() -> FakeWebsite:
    return FakeWebsite()


@pytest.fixture()
def metadata_fetcher(website) -> PageMetadataFetcher:
    return PageMetadataFetcher(timeout=1.0, transport=website.transport())


@pytest.fixture()
def make_job(db_storage, file_storage, retry_policy, capture_settings):
    """Build a ScreenshotJob around the shared fakes with a chosen capturer."""

    def _make(capturer) -> ScreenshotJob:
        return ScreenshotJob(
            db_storage=db_storage,
            file_storage=file_storage,
            capturer=capturer,
            retry_policy=retry_policy,
            capture_settings=capture_settings,
        )

    return _make


@pytest.fixture()
def bookmark_service(db_storage, file_storage, scheduler, metadata_fetcher) -> BookmarkService:
    return BookmarkService(
        db_storage=db_storage,
        file_storage=file_storage,
        schedule_capture=scheduler,
        metadata_fetcher=metadata_fetcher,
    )


@pytest.fixture()
def api_client(bookmark_service) -> Generator:
    from fastapi.testclient import TestClient
    from markshot import server

    server.app.state.bookmark_service = bookmark_service
    client = TestClient(server.app)
    try:
        yield client
    finally:
        client.close()
        server.app.state.bookmark_service = None
