from __future__ import annotations

import argparse
import asyncio
import json
import sys

from app.core.config import settings
from app.core.db import SessionLocal, engine
from app.core.logging_setup import configure_logging
from app.services.media_reconciler import delete_photo_blob, find_media_drift
from app.services.storage import MediaStoreError, get_media_store


async def run(mode: str, prefix: str) -> int:
    try:
        return await _reconcile(mode, prefix)
    finally:
        await engine.dispose()


async def _reconcile(mode: str, prefix: str) -> int:
    store = get_media_store()
    async with SessionLocal() as db:
        try:
            drift = await find_media_drift(db=db, store=store, prefix=prefix)
        except MediaStoreError as e:
            print(f"Failed to list media under {prefix}: {e}", file=sys.stderr)
            return 1

    report = {
        "mode": mode,
        "prefix": prefix,
        "orphan_blobs": drift.orphan_blobs,
        "dangling_rows": drift.dangling_rows,
    }

    if mode == "apply":
        # rows are never touched here; dangling rows are reported only
        deleted, failed = [], []
        for sid in drift.orphan_blobs:
            (deleted if await delete_photo_blob(store, sid) else failed).append(sid)
        report["deleted"] = deleted
        report["failed"] = failed

    print(json.dumps(report, indent=2, ensure_ascii=False))
    return 0 if not report.get("failed") else 1


def main() -> int:
    p = argparse.ArgumentParser(description="Report (and optionally delete) media blobs without image rows.")
    p.add_argument("--prefix", default=settings.media_root_folder, help="storage folder to scan")
    p.add_argument("--mode", choices=["preview", "apply"], default="preview")
    p.add_argument("--yes", action="store_true", help="required for apply mode (safety)")
    args = p.parse_args()

    if args.mode == "apply" and not args.yes:
        print("Refusing to apply without --yes (safety).", file=sys.stderr)
        return 2

    configure_logging()
    return asyncio.run(run(args.mode, args.prefix.rstrip("/")))


if __name__ == "__main__":
    raise SystemExit(main())
