"""
Rewrite expiring signed screenshot URLs to permanent public URLs.

Older bookmarks stored V2/V4 signed URLs, which stop working once they
expire. The object path is on the record, so the token-less download URL can
be rebuilt from it.

Usage:
  python -m markshot.scripts.fix_screenshot_urls --dry-run
  python -m markshot.scripts.fix_screenshot_urls

The script is idempotent and safe to re-run.
"""

from __future__ import annotations

import argparse
from typing import Any, Dict

from markshot.core.utils import is_signed_url
from markshot.storage.database_storage import DatabaseStorageProvider
from markshot.storage.file_storage import FileStorageProvider


def fix_screenshot_urls(
    db_storage: DatabaseStorageProvider,
    file_storage: FileStorageProvider,
    dry_run: bool = False,
) -> Dict[str, Any]:
    updates: Dict[str, Dict[str, Any]] = {}
    total = 0
    skipped = 0

    for record in db_storage.iter_bookmarks():
        total += 1
        url = record.screenshot.url
        path = record.screenshot.path
        if not url or not path or not is_signed_url(url):
            skipped += 1
            continue

        new_url = file_storage.public_url(path)
        print(f"[fix-urls] {record.id}: {path}")
        updates[record.id] = {"screenshotUrl": new_url}

    if dry_run:
        print(f"[fix-urls] Dry run: {len(updates)} bookmark(s) would be updated")
        updated = 0
    else:
        updated = db_storage.batch_update(updates) if updates else 0

    result = {"total": total, "updated": updated, "matched": len(updates), "skipped": skipped}
    print(f"[fix-urls] Done. total={total} updated={updated} skipped={skipped}")
    return result


def main() -> None:
    parser = argparse.ArgumentParser(description="Replace signed screenshot URLs with public URLs")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List the bookmarks that would change without writing",
    )
    args = parser.parse_args()

    from markshot.runtime import get_runtime

    runtime = get_runtime()
    fix_screenshot_urls(runtime.db_storage, runtime.file_storage, dry_run=args.dry_run)


if __name__ == "__main__":
    main()
