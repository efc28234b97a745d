from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.image import Image
from app.services.media_reconciler import delete_photo_blob
from app.services.photo_diff import PhotoRow
from app.services.storage import MediaStore


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PhotoDeleteResult:
    storage_id: str
    # "deleted": row (if any) and blob gone; "blob_kept": row gone, blob orphaned;
    # "row_failed": row delete failed, blob untouched; "foreign": id belongs to another listing
    status: Literal["deleted", "blob_kept", "row_failed", "foreign"]
    row_deleted: bool = False


async def load_photo_snapshot(db: AsyncSession, listing_id: str) -> list[PhotoRow]:
    stmt = (
        select(Image.cloudinary_id, Image.order_index, Image.is_cover, Image.url)
        .where(Image.listing_id == listing_id)
        .order_by(Image.order_index.asc())
    )
    rows = (await db.execute(stmt)).all()
    return [PhotoRow(storage_id=r[0], order_index=r[1], is_cover=r[2], url=r[3]) for r in rows]


async def delete_photo(
    *,
    db: AsyncSession,
    store: MediaStore,
    storage_id: str,
    listing_id: str | None = None,
) -> PhotoDeleteResult:
    """
    Delete one photo: datastore row first (committed), then the blob.

    A blob is never removed while its row may still be shown, so a failed row
    delete leaves the blob alone. When `listing_id` is given, ids recorded
    under another listing are refused.
    """
    try:
        owner = (
            await db.execute(select(Image.listing_id).where(Image.cloudinary_id == storage_id))
        ).scalar_one_or_none()

        if owner is not None and listing_id is not None and owner != listing_id:
            log.warning("refusing to delete photo %s owned by listing %s (requested by %s)", storage_id, owner, listing_id)
            return PhotoDeleteResult(storage_id=storage_id, status="foreign")

        row_deleted = False
        if owner is not None:
            await db.execute(delete(Image).where(Image.cloudinary_id == storage_id))
            await db.commit()
            row_deleted = True
            log.info("deleted image row %s", storage_id)
    except SQLAlchemyError:
        await db.rollback()
        log.exception("image row delete failed %s, keeping blob", storage_id)
        return PhotoDeleteResult(storage_id=storage_id, status="row_failed")

    blob_deleted = await delete_photo_blob(store, storage_id)
    return PhotoDeleteResult(
        storage_id=storage_id,
        status="deleted" if blob_deleted else "blob_kept",
        row_deleted=row_deleted,
    )
