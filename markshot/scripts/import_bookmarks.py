"""
Import bookmarks from a JSON export.

The file holds a list of objects with ``url``, ``title``, ``description``,
``tags`` (a list or a comma-separated string) and ``created_at``. The
Spanish-language keys of the old exporter (``titulo``, ``descripcion``,
``fecha``) are accepted too.

Every bookmark goes through the normal create path, so tag counts are
maintained and each import gets a pending screenshot.

Usage:
  python -m markshot.scripts.import_bookmarks bookmarks.json --user-id UID --limit 10
  python -m markshot.scripts.import_bookmarks bookmarks.json --user-id UID \
      --exclude-tag jquery --log import-log.json
"""

from __future__ import annotations

import argparse
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from markshot.core.utils import utc_now
from markshot.services.bookmark_service import BookmarkService
from markshot.services.exceptions import BookmarkError
from markshot.services.validation import parse_tag_list


def _first(entry: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = entry.get(key)
        if value not in (None, ""):
            return value
    return None


def parse_tags(raw: Any) -> List[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        return parse_tag_list(raw)
    return [str(tag).strip() for tag in raw if str(tag).strip()]


def parse_date(raw: Optional[str]) -> Optional[datetime]:
    """Parse ``2014-02-11 08:50:26`` style timestamps; naive values are UTC."""
    if not raw:
        return None
    try:
        value = datetime.fromisoformat(str(raw).strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def import_bookmarks(
    service: BookmarkService,
    entries: Iterable[Dict[str, Any]],
    user_id: str,
    limit: Optional[int] = None,
    excluded_tags: Iterable[str] = (),
) -> Dict[str, Any]:
    excluded = {tag.strip().lower() for tag in excluded_tags if tag.strip()}
    entries = list(entries)
    if limit is not None:
        entries = entries[:limit]

    log: Dict[str, Any] = {
        "timestamp": utc_now().isoformat(),
        "total_processed": 0,
        "successful": 0,
        "failed": 0,
        "skipped": 0,
        "bookmarks": [],
    }

    for index, entry in enumerate(entries, start=1):
        url = _first(entry, "url")
        title = _first(entry, "title", "titulo") or url
        tags = parse_tags(_first(entry, "tags"))
        print(f"[import] [{index}/{len(entries)}] {title}")

        item: Dict[str, Any] = {"url": url, "title": title, "success": False}
        log["total_processed"] += 1

        blocked = excluded.intersection(tag.lower() for tag in tags)
        if blocked:
            item["skipped"] = True
            item["skip_reason"] = f"Excluded tag: {', '.join(sorted(blocked))}"
            log["skipped"] += 1
            log["bookmarks"].append(item)
            print(f"[import]   skipped ({item['skip_reason']})")
            continue

        try:
            record = service.create_bookmark(
                user_id,
                url=url,
                title=title,
                description=_first(entry, "description", "descripcion"),
                tags=tags,
                created_at=parse_date(_first(entry, "created_at", "date", "fecha")),
            )
        except BookmarkError as exc:
            item["error"] = str(exc)
            log["failed"] += 1
            log["bookmarks"].append(item)
            print(f"[import]   failed: {exc}")
            continue

        item["success"] = True
        item["id"] = record.id
        log["successful"] += 1
        log["bookmarks"].append(item)

    print(
        f"[import] Done. processed={log['total_processed']} ok={log['successful']} "
        f"skipped={log['skipped']} failed={log['failed']}"
    )
    return log


def main() -> None:
    parser = argparse.ArgumentParser(description="Import bookmarks from a JSON file")
    parser.add_argument("file", type=Path, help="JSON file with a list of bookmarks")
    parser.add_argument("--user-id", required=True, help="Owner of the imported bookmarks")
    parser.add_argument("--limit", type=int, default=None, help="Import at most N bookmarks")
    parser.add_argument(
        "--exclude-tag",
        action="append",
        default=[],
        help="Skip bookmarks carrying this tag (repeatable)",
    )
    parser.add_argument("--log", type=Path, default=None, help="Write a JSON import log here")
    args = parser.parse_args()

    entries = json.loads(args.file.read_text(encoding="utf-8"))
    if not isinstance(entries, list):
        parser.error("Import file must contain a JSON list")

    from markshot.runtime import get_runtime

    runtime = get_runtime()
    log = import_bookmarks(
        runtime.bookmark_service,
        entries,
        user_id=args.user_id,
        limit=args.limit,
        excluded_tags=args.exclude_tag,
    )

    if args.log:
        args.log.write_text(json.dumps(log, indent=2), encoding="utf-8")
        print(f"[import] Log saved to {args.log}")


if __name__ == "__main__":
    main()
