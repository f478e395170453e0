from __future__ import annotations

import re
from datetime import datetime, timezone
from urllib.parse import quote

# Query parameters only present on V2/V4 signed GCS URLs
_SIGNED_URL_MARKERS = ("Expires", "Signature", "GoogleAccessId", "X-Goog-Signature")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def sanitize_path_segment(name: str) -> str:
    """Return a safe object-path segment by keeping [A-Za-z0-9._-] and trimming length.

    Leading dots are stripped so no segment can be hidden or walk upwards.
    Leading underscores and dashes are kept: Firestore auto-ids may start
    with them.
    """
    safe = re.sub(r"[^A-Za-z0-9._-]", "_", name)
    safe = safe.lstrip(".")
    if not safe:
        safe = "file"
    return safe[:200]


def normalize_tag_id(tag: str) -> str:
    """Normalize a tag for use as a tag aggregate document id.

    Lowercases, collapses whitespace runs into ``-`` and drops anything
    outside ``[a-z0-9-]``. Returns an empty string for tags with no usable
    characters.
    """
    normalized = re.sub(r"\s+", "-", tag.strip().lower())
    return re.sub(r"[^a-z0-9-]", "", normalized)


def build_public_url(base_url: str, bucket: str, storage_path: str) -> str:
    """Build a Firebase-style download URL that needs no token.

    Format: {base}/v0/b/{bucket}/o/{url-encoded path}?alt=media
    """
    encoded = quote(storage_path, safe="")
    return f"{base_url.rstrip('/')}/v0/b/{bucket}/o/{encoded}?alt=media"


def is_signed_url(url: str | None) -> bool:
    """Check whether a stored screenshot URL is an expiring signed URL."""
    if not url:
        return False
    return any(marker in url for marker in _SIGNED_URL_MARKERS)
