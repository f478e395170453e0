"""
Validation rules for bookmark data.

Each helper raises ``InvalidBookmarkError`` with a user-facing message and
returns the cleaned value.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional

from ..core.utils import normalize_tag_id
from .exceptions import InvalidBookmarkError

MAX_URL_LENGTH = 2048
MAX_TITLE_LENGTH = 500
MAX_DESCRIPTION_LENGTH = 2000
MAX_TAGS = 20
MAX_TAG_LENGTH = 50

URL_PATTERN = re.compile(
    r"^https?://(www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b"
    r"([-a-zA-Z0-9()@:%_+.~#?&/=]*)$"
)


def validate_url(url: Optional[str]) -> str:
    if not url or not isinstance(url, str):
        raise InvalidBookmarkError("URL is required")
    url = url.strip()
    if len(url) > MAX_URL_LENGTH:
        raise InvalidBookmarkError(f"URL is too long (max {MAX_URL_LENGTH} characters)")
    if not URL_PATTERN.match(url):
        raise InvalidBookmarkError("URL is not valid")
    return url


def validate_title(title: Optional[str], required: bool = True) -> Optional[str]:
    if title is None:
        if required:
            raise InvalidBookmarkError("Title is required")
        return None
    if not isinstance(title, str):
        raise InvalidBookmarkError("Title must be a string")
    title = title.strip()
    if required and not title:
        raise InvalidBookmarkError("Title is required")
    if len(title) > MAX_TITLE_LENGTH:
        raise InvalidBookmarkError(f"Title is too long (max {MAX_TITLE_LENGTH} characters)")
    return title


def validate_description(description: Optional[str]) -> str:
    if description is None:
        return ""
    if not isinstance(description, str):
        raise InvalidBookmarkError("Description must be a string")
    description = description.strip()
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise InvalidBookmarkError(
            f"Description is too long (max {MAX_DESCRIPTION_LENGTH} characters)"
        )
    return description


def validate_tags(tags: Optional[Iterable[str]]) -> List[str]:
    """Trim tags and drop blanks and duplicates, keeping order.

    Tags that normalize to the same aggregate id count as duplicates, so a
    bookmark adds at most one to each tag count.
    """
    if tags is None:
        return []
    if isinstance(tags, str):
        raise InvalidBookmarkError("Tags must be a list")

    cleaned: List[str] = []
    seen = set()
    for tag in tags:
        if not isinstance(tag, str):
            raise InvalidBookmarkError("Each tag must be a string")
        tag = tag.strip()
        if not tag:
            continue
        if len(tag) > MAX_TAG_LENGTH:
            raise InvalidBookmarkError(f"Tag is too long (max {MAX_TAG_LENGTH} characters)")
        key = normalize_tag_id(tag) or tag
        if key in seen:
            continue
        seen.add(key)
        cleaned.append(tag)

    if len(cleaned) > MAX_TAGS:
        raise InvalidBookmarkError(f"Too many tags (max {MAX_TAGS})")
    return cleaned


def validate_folder_id(folder_id: Optional[str]) -> Optional[str]:
    if folder_id is None:
        return None
    if not isinstance(folder_id, str):
        raise InvalidBookmarkError("Folder id must be a string")
    if not folder_id.strip():
        raise InvalidBookmarkError("Folder id cannot be empty")
    return folder_id.strip()


def parse_tag_list(raw: Optional[str]) -> List[str]:
    """Split a comma-separated tag string (import files, query strings)."""
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]
