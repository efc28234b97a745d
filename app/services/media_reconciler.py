from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.image import Image
from app.services.folder_names import rewrite_media_url, rewrite_storage_id
from app.services.storage import MediaStore, MovedResource


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FolderRenameOutcome:
    success: bool
    old_path: str
    new_path: str
    # old storage id -> moved resource whose row (if any) now carries the new id
    moved: dict[str, MovedResource] = field(default_factory=dict)
    # old ids whose datastore row could not be rewritten (left dangling)
    failed_rewrites: list[str] = field(default_factory=list)
    # the store moved the folder without saying what moved; rows were matched by prefix
    matched_by_prefix: bool = False
    error_message: str | None = None

    def new_id_for(self, storage_id: str) -> str:
        """
        Id to submit for `storage_id` after this rename.

        Ids whose row kept its old value stay as they are, so the photo
        differencer still finds them in the listing's snapshot.
        """
        if not self.success or storage_id in self.failed_rewrites:
            return storage_id
        m = self.moved.get(storage_id)
        if m is not None:
            return m.new_id
        if self.matched_by_prefix:
            # uploads with no row yet
            return rewrite_storage_id(storage_id, self.old_path, self.new_path)
        return storage_id

    def new_url_for(self, storage_id: str, url: str | None) -> str | None:
        if not self.success or storage_id in self.failed_rewrites:
            return url
        m = self.moved.get(storage_id)
        if m is not None and m.new_url:
            return m.new_url
        if self.matched_by_prefix and url:
            return rewrite_media_url(url, self.old_path, self.new_path)
        return url


async def _rows_under(db: AsyncSession, old_path: str, new_path: str) -> list[MovedResource]:
    rows = (await db.execute(
        select(Image.cloudinary_id, Image.url)
        .where(Image.cloudinary_id.startswith(old_path + "/", autoescape=True))
        .order_by(Image.cloudinary_id)
    )).all()
    return [
        MovedResource(
            old_id=sid,
            new_id=rewrite_storage_id(sid, old_path, new_path),
            new_url=rewrite_media_url(url, old_path, new_path),
        )
        for sid, url in rows
    ]


async def rename_listing_folder(
    *,
    db: AsyncSession,
    store: MediaStore,
    old_path: str,
    new_path: str,
) -> FolderRenameOutcome:
    """
    Rename a listing's storage folder and point image rows at the moved blobs.

    Rows are rewritten one at a time and committed individually; a row that
    fails to update is logged and skipped, leaving its old id behind. When
    the store cannot list what it moved, rows under the old folder are
    rewritten by prefix.
    """
    log.info("renaming folder %s -> %s", old_path, new_path)
    result = await store.rename_folder(old_path, new_path)
    if not result.success:
        log.error("folder rename failed %s -> %s: %s", old_path, new_path, result.error_message)
        return FolderRenameOutcome(
            success=False, old_path=old_path, new_path=new_path, error_message=result.error_message
        )
    if old_path == new_path:
        return FolderRenameOutcome(success=True, old_path=old_path, new_path=new_path)

    by_prefix = not result.moved
    if by_prefix:
        log.warning("store did not list moved resources for %s -> %s, rewriting rows by prefix", old_path, new_path)
        resources = await _rows_under(db, old_path, new_path)
    else:
        resources = list(result.moved)

    moved = {m.old_id: m for m in resources}
    failed: list[str] = []

    for m in resources:
        if m.old_id == m.new_id:
            continue
        try:
            await db.execute(
                update(Image)
                .where(Image.cloudinary_id == m.old_id)
                .values(cloudinary_id=m.new_id, url=m.new_url)
            )
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            log.exception("image row rewrite failed %s -> %s", m.old_id, m.new_id)
            failed.append(m.old_id)

    if moved:
        log.info("rewrote %d/%d image rows after rename", len(moved) - len(failed), len(moved))

    return FolderRenameOutcome(
        success=True,
        old_path=old_path,
        new_path=new_path,
        moved=moved,
        failed_rewrites=failed,
        matched_by_prefix=by_prefix,
        error_message=result.error_message,
    )


async def delete_photo_blob(store: MediaStore, storage_id: str) -> bool:
    """
    Remove a blob: primary delete first, admin delete as the fallback.

    Returns False when both fail; the caller has already removed the row, so
    the blob is left to out-of-band cleanup.
    """
    if await store.destroy(storage_id):
        log.info("deleted blob %s", storage_id)
        return True

    log.warning("primary delete failed for %s, trying admin delete", storage_id)
    if await store.delete_admin(storage_id):
        log.info("deleted blob %s via admin delete", storage_id)
        return True

    log.error("blob %s could not be deleted, leaving it orphaned", storage_id)
    return False


@dataclass(frozen=True)
class MediaDrift:
    # blobs under the media root with no image row
    orphan_blobs: list[str] = field(default_factory=list)
    # image rows whose blob is gone
    dangling_rows: list[str] = field(default_factory=list)


async def find_media_drift(*, db: AsyncSession, store: MediaStore, prefix: str) -> MediaDrift:
    """Compare image rows with the blobs stored under `prefix`."""
    row_ids = set((await db.execute(select(Image.cloudinary_id))).scalars().all())
    blob_ids = {m.id for m in await store.list_resources(prefix)}

    in_scope = {sid for sid in row_ids if sid.startswith(prefix + "/")}
    return MediaDrift(
        orphan_blobs=sorted(blob_ids - row_ids),
        dangling_rows=sorted(in_scope - blob_ids),
    )
