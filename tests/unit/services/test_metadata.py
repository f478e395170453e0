"""
Tests for the page metadata lookup.

Pages are served by FakeWebsite through httpx.MockTransport.
"""

import httpx
import pytest

from markshot.services.exceptions import (
    InvalidBookmarkError,
    PageFetchError,
    PageFetchTimeoutError,
)
from markshot.services.metadata import PageMetadataFetcher, extract_metadata

FULL_PAGE = """
<html>
  <head>
    <title>  Document title  </title>
    <meta name="description" content="Plain description">
    <meta name="twitter:title" content="Card title">
    <meta name="twitter:description" content="Card description">
    <meta property="og:title" content=" Graph title ">
    <meta property="og:description" content="Graph description">
  </head>
  <body><p>Hello</p></body>
</html>
"""


class TestExtractMetadata:
    def test_open_graph_preferred(self):
        metadata = extract_metadata(FULL_PAGE)

        assert metadata.title == "Graph title"
        assert metadata.description == "Graph description"

    def test_twitter_card_fallback(self):
        html = (
            '<html><head><title>Doc</title>'
            '<meta name="twitter:title" content="Card title">'
            '<meta name="twitter:description" content="Card description">'
            '<meta name="description" content="Plain"></head></html>'
        )

        metadata = extract_metadata(html)

        assert metadata.title == "Card title"
        assert metadata.description == "Card description"

    def test_document_title_and_meta_description(self):
        html = (
            '<html><head><title> Doc title </title>'
            '<meta name="description" content=" Plain "></head></html>'
        )

        metadata = extract_metadata(html)

        assert metadata.title == "Doc title"
        assert metadata.description == "Plain"

    def test_empty_values_skipped(self):
        html = (
            '<html><head><title>Doc</title>'
            '<meta property="og:title" content="  "></head></html>'
        )

        assert extract_metadata(html).title == "Doc"

    def test_missing_metadata_is_empty(self):
        metadata = extract_metadata("<html><body>no head</body></html>")

        assert metadata.title == ""
        assert metadata.description == ""


class TestPageMetadataFetcher:
    def test_fetches_and_extracts(self, website, metadata_fetcher):
        website.add_page("https://example.com/post", FULL_PAGE)

        metadata = metadata_fetcher.fetch("https://example.com/post")

        assert metadata.title == "Graph title"
        request = website.last_request
        assert "Chrome" in request.headers["User-Agent"]
        assert "text/html" in request.headers["Accept"]

    def test_non_200_status(self, website, metadata_fetcher):
        website.add_page("https://example.com/gone", "", status_code=410)

        with pytest.raises(PageFetchError, match="Status code: 410"):
            metadata_fetcher.fetch("https://example.com/gone")

    def test_timeout(self, website, metadata_fetcher):
        website.fail("https://slow.example.com/", httpx.ReadTimeout("timed out"))

        with pytest.raises(PageFetchTimeoutError, match="took too long"):
            metadata_fetcher.fetch("https://slow.example.com/")

    def test_connection_error(self, website, metadata_fetcher):
        website.fail("https://down.example.com/", httpx.ConnectError("refused"))

        with pytest.raises(PageFetchError, match="Could not connect") as excinfo:
            metadata_fetcher.fetch("https://down.example.com/")

        assert not isinstance(excinfo.value, PageFetchTimeoutError)

    def test_body_cut_at_max_bytes(self, website):
        padding = "<!-- " + "x" * 5000 + " -->"
        website.add_page(
            "https://example.com/big",
            "<html><head><title>Early</title></head>" + padding
            + '<meta name="description" content="Late"></html>',
        )
        fetcher = PageMetadataFetcher(max_bytes=1000, transport=website.transport())

        metadata = fetcher.fetch("https://example.com/big")

        assert metadata.title == "Early"
        assert metadata.description == ""


class TestServiceLookup:
    def test_validates_url_before_fetching(self, bookmark_service, website):
        with pytest.raises(InvalidBookmarkError):
            bookmark_service.get_page_metadata("ftp://example.com")

        assert website.requests == []

    def test_returns_metadata(self, bookmark_service, website):
        website.add_page("https://example.com/", FULL_PAGE)

        metadata = bookmark_service.get_page_metadata(" https://example.com/ ")

        assert metadata.description == "Graph description"
