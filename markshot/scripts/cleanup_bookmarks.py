"""
Delete every bookmark of one user.

Meant for clearing test data. Each bookmark goes through the normal delete
path, so its stored screenshot is removed and tag counts are decremented.

Usage:
  python -m markshot.scripts.cleanup_bookmarks --user-id UID --dry-run
  python -m markshot.scripts.cleanup_bookmarks --user-id UID --yes
"""

from __future__ import annotations

import argparse
from typing import Any, Dict, List

from markshot.services.bookmark_service import MAX_PAGE_SIZE, BookmarkService
from markshot.services.exceptions import BookmarkError
from markshot.storage.database_storage import BookmarkFilters


def collect_bookmark_ids(service: BookmarkService, user_id: str) -> List[str]:
    """Page through all of a user's bookmarks before anything is deleted."""
    ids: List[str] = []
    cursor = None
    while True:
        page = service.list_bookmarks(
            user_id, BookmarkFilters(limit=MAX_PAGE_SIZE, cursor=cursor)
        )
        ids.extend(record.id for record in page.items if record.id)
        if not page.has_more or not page.next_cursor:
            return ids
        cursor = page.next_cursor


def cleanup_bookmarks(
    service: BookmarkService,
    user_id: str,
    dry_run: bool = False,
) -> Dict[str, Any]:
    print(f"[cleanup] User: {user_id}")
    ids = collect_bookmark_ids(service, user_id)
    print(f"[cleanup] Bookmarks found: {len(ids)}")

    result: Dict[str, Any] = {"found": len(ids), "deleted": 0, "failed": []}
    if dry_run:
        print("[cleanup] Dry run, nothing deleted.")
        return result

    for bookmark_id in ids:
        try:
            service.delete_bookmark(user_id, bookmark_id)
        except BookmarkError as exc:
            result["failed"].append(bookmark_id)
            print(f"[cleanup]   {bookmark_id} failed: {exc}")
            continue
        result["deleted"] += 1

    print(f"[cleanup] Done. deleted={result['deleted']} failed={len(result['failed'])}")
    return result


def main() -> None:
    parser = argparse.ArgumentParser(description="Delete all bookmarks of a user")
    parser.add_argument("--user-id", required=True, help="Owner of the bookmarks to delete")
    parser.add_argument("--dry-run", action="store_true", help="Only count the bookmarks")
    parser.add_argument("--yes", action="store_true", help="Confirm the deletion")
    args = parser.parse_args()

    if not args.dry_run and not args.yes:
        parser.error("Pass --yes to delete, or --dry-run to only count")

    from markshot.runtime import get_runtime

    runtime = get_runtime()
    cleanup_bookmarks(runtime.bookmark_service, args.user_id, dry_run=args.dry_run)


if __name__ == "__main__":
    main()
