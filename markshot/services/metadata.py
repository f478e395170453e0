"""
Page metadata lookup.

Fetches a page over plain HTTP and reads its title and description so the
client can prefill a new bookmark. Open Graph tags win over Twitter card
tags, which win over the document title and meta description.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Optional

import httpx
from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning

from .exceptions import PageFetchError, PageFetchTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_BYTES = 1_000_000
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
ACCEPT_HEADER = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"

TITLE_SOURCES = (("property", "og:title"), ("name", "twitter:title"))
DESCRIPTION_SOURCES = (
    ("property", "og:description"),
    ("name", "twitter:description"),
    ("name", "description"),
)


@dataclass
class PageMetadata:
    title: str = ""
    description: str = ""


def _meta_content(soup: BeautifulSoup, attr: str, value: str) -> str:
    tag = soup.find("meta", attrs={attr: value})
    if tag is None:
        return ""
    return (tag.get("content") or "").strip()


def _first_meta(soup: BeautifulSoup, sources) -> str:
    for attr, value in sources:
        content = _meta_content(soup, attr, value)
        if content:
            return content
    return ""


def extract_metadata(html: str) -> PageMetadata:
    """Read title and description from an HTML document."""
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)
        soup = BeautifulSoup(html, "lxml")

    title = _first_meta(soup, TITLE_SOURCES)
    if not title and soup.title and soup.title.string:
        title = soup.title.string.strip()

    return PageMetadata(title=title, description=_first_meta(soup, DESCRIPTION_SOURCES))


class PageMetadataFetcher:
    """Fetch pages with httpx and extract their metadata.

    Bodies are read as a stream and cut off at ``max_bytes``; the head of a
    page is all the metadata needs.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_bytes: int = DEFAULT_MAX_BYTES,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.timeout = timeout
        self.max_bytes = max_bytes
        self.headers = {"User-Agent": user_agent, "Accept": ACCEPT_HEADER}
        self.transport = transport

    def _fetch_html(self, url: str) -> str:
        with httpx.Client(
            follow_redirects=True,
            timeout=self.timeout,
            headers=self.headers,
            transport=self.transport,
        ) as client:
            with client.stream("GET", url) as response:
                if response.status_code != 200:
                    raise PageFetchError(
                        f"Failed to fetch URL. Status code: {response.status_code}"
                    )
                chunks = []
                total = 0
                for chunk in response.iter_bytes():
                    total += len(chunk)
                    if total > self.max_bytes:
                        break
                    chunks.append(chunk)
                encoding = response.encoding or "utf-8"
                return b"".join(chunks).decode(encoding, errors="ignore")

    def fetch(self, url: str) -> PageMetadata:
        try:
            html = self._fetch_html(url)
        except httpx.TimeoutException as exc:
            logger.warning("Metadata fetch timed out", extra={"url": url})
            raise PageFetchTimeoutError(
                "Request timeout. The website took too long to respond."
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("Metadata fetch failed", extra={"url": url, "error": str(exc)})
            raise PageFetchError(
                "Could not connect to the website. Please check the URL."
            ) from exc

        return extract_metadata(html)
