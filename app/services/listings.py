from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.errors import ApiError
from app.core.ids import new_listing_id
from app.models.address import Address
from app.models.image import Image
from app.models.listing import Listing
from app.schemas.listing import AddressIn, ListingWriteIn
from app.services.folder_names import folder_of, listing_base_folder, slugify
from app.services.listing_update import (
    DETAIL_MODELS,
    INVALID_PRICE_MESSAGE,
    StepResult,
    WriteOutcome,
    incoming_photos,
    remap_photos,
    rename_intent,
    validate_listing_payload,
    write_address,
    write_details,
)
from app.services.media_reconciler import delete_photo_blob, rename_listing_folder
from app.services.storage import MediaStore, MediaStoreError
from app.services.uploads import folder_cache


log = logging.getLogger(__name__)

_FULL_LOAD = (
    selectinload(Listing.images),
    selectinload(Listing.address),
    selectinload(Listing.konut_details),
    selectinload(Listing.ticari_details),
    selectinload(Listing.arsa_details),
    selectinload(Listing.vasita_details),
)

_DETAIL_ATTRS = {
    "konut": "konut_details",
    "ticari": "ticari_details",
    "arsa": "arsa_details",
    "vasita": "vasita_details",
}


def row_values(row: Any, *, exclude: tuple[str, ...] = ("id", "listing_id")) -> dict[str, Any]:
    return {c.key: getattr(row, c.key) for c in row.__table__.columns if c.key not in exclude}


def listing_detail_row(listing: Listing) -> Any | None:
    """Detail row matching the listing's category (requires a full load)."""
    attr = _DETAIL_ATTRS.get(listing.property_type)
    return getattr(listing, attr) if attr else None


def thumbnail_url(listing: Listing) -> str | None:
    images = list(listing.images)
    if not images:
        return None
    cover = next((i for i in images if i.is_cover), images[0])
    return cover.url


# -------- reads --------

async def get_listing(db: AsyncSession, listing_id: str) -> Listing | None:
    stmt = select(Listing).where(Listing.id == listing_id).options(*_FULL_LOAD)
    return (await db.execute(stmt)).scalar_one_or_none()


async def list_active_listings(db: AsyncSession) -> list[Listing]:
    stmt = (
        select(Listing)
        .where(Listing.is_active.is_(True))
        .options(selectinload(Listing.images))
        .order_by(Listing.created_at.desc(), Listing.id)
    )
    return list((await db.execute(stmt)).scalars().all())


async def get_listing_by_slug(db: AsyncSession, slug: str, *, include_inactive: bool = False) -> Listing | None:
    # slugs are derived from titles, not stored; match on the derived value
    stmt = select(Listing.id, Listing.title).order_by(Listing.created_at.desc())
    if not include_inactive:
        stmt = stmt.where(Listing.is_active.is_(True))
    wanted = slug.strip().lower()
    for listing_id, title in (await db.execute(stmt)).all():
        if slugify(title) == wanted:
            return await get_listing(db, listing_id)
    return None


# -------- create --------

async def create_listing(
    *,
    db: AsyncSession,
    store: MediaStore,
    payload: ListingWriteIn,
) -> WriteOutcome:
    """
    Persist a wizard submission: listing, details, address, then image rows.

    The listing and its detail row are written together. Address and image
    rows follow in their own commits; their failures are logged and reported
    as soft failures, the listing stays.
    """
    validated = validate_listing_payload(payload, action="create", require_id=False)
    if isinstance(validated, WriteOutcome):
        log.info("create rejected: %s", validated.error_message)
        return validated

    listing_id = validated.id or new_listing_id()
    steps: list[StepResult] = [StepResult("validate", "ok")]

    if (await db.execute(select(Listing.id).where(Listing.id == listing_id))).scalar_one_or_none():
        return WriteOutcome(
            ok=False,
            listing_id=listing_id,
            error_kind="conflict",
            error_message="Listing already exists",
            steps=steps,
        )

    photos = incoming_photos(payload)
    intent = rename_intent(payload, validated.title)
    if intent is not None:
        renamed = await rename_listing_folder(db=db, store=store, old_path=intent[0], new_path=intent[1])
        if renamed.success:
            photos, _ = remap_photos(renamed, photos, [])
            steps.append(StepResult("folder_rename", "ok"))
        else:
            steps.append(StepResult("folder_rename", "soft_fail", renamed.error_message))

    stage = "core_fields"
    try:
        db.add(Listing(
            id=listing_id,
            title=validated.title,
            description=validated.description,
            price=validated.price,
            property_type=validated.property_type,
            listing_status=validated.listing_status,
            is_active=True,
            is_featured=False,
        ))
        await db.flush()
        stage = "details"
        await write_details(db, listing_id, validated.detail)
        await db.commit()
    except SQLAlchemyError as e:
        # nothing of the listing survives a failed detail insert
        await db.rollback()
        log.exception("listing create failed at %s id=%s", stage, listing_id)
        return WriteOutcome(
            ok=False,
            listing_id=listing_id,
            error_kind="persistence",
            error_message="Failed to create listing",
            error_details=str(e),
            steps=steps + [StepResult(stage, "hard_fail", str(e))],
        )
    steps += [StepResult("core_fields", "ok"), StepResult("details", "ok")]

    if validated.property_type != "vasita":
        try:
            await write_address(db, listing_id, payload.address or AddressIn())
            await db.commit()
            steps.append(StepResult("address", "ok"))
        except SQLAlchemyError as e:
            await db.rollback()
            log.exception("address insert failed id=%s", listing_id)
            steps.append(StepResult("address", "soft_fail", str(e)))

    seen: set[str] = set()
    unique = []
    for p in photos:
        if p.storage_id and p.storage_id not in seen:
            seen.add(p.storage_id)
            unique.append(p)
    if unique:
        try:
            db.add_all([
                Image(
                    listing_id=listing_id,
                    cloudinary_id=p.storage_id,
                    url=p.url or "",
                    order_index=i,
                    is_cover=i == 0,
                )
                for i, p in enumerate(unique)
            ])
            await db.commit()
            steps.append(StepResult("photos", "ok"))
        except SQLAlchemyError as e:
            await db.rollback()
            log.exception("image insert failed id=%s (%d photos)", listing_id, len(unique))
            steps.append(StepResult("photos", "soft_fail", str(e)))

    folder_cache.forget(listing_id)
    log.info("listing created id=%s type=%s photos=%d", listing_id, validated.property_type, len(unique))
    return WriteOutcome(ok=True, listing_id=listing_id, steps=steps)


# -------- quick edits --------

async def _load_or_404(db: AsyncSession, listing_id: str) -> Listing:
    listing = await db.get(Listing, listing_id)
    if listing is None:
        raise ApiError(404, "Listing not found")
    return listing


async def _commit_or_500(db: AsyncSession, message: str) -> None:
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        log.exception(message)
        raise ApiError(500, message, str(e)) from e


async def set_listing_flags(
    db: AsyncSession,
    listing_id: str,
    *,
    is_featured: bool | None = None,
    is_active: bool | None = None,
) -> Listing:
    if is_featured is None and is_active is None:
        raise ApiError(400, "is_featured veya is_active alanı zorunludur")

    listing = await _load_or_404(db, listing_id)
    if is_featured is not None:
        listing.is_featured = is_featured
    if is_active is not None:
        listing.is_active = is_active
    await _commit_or_500(db, "Failed to update listing")
    return listing


def parse_price(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    s = str(value).strip().replace(" ", "")
    # "1.250.000" and "1.250.000,50" are how prices get typed in the admin
    if "," in s:
        s = s.replace(".", "").replace(",", ".")
    elif s.count(".") > 1:
        s = s.replace(".", "")
    try:
        return float(s)
    except ValueError:
        return None


async def update_price(db: AsyncSession, listing_id: str | None, raw_price: Any) -> Listing:
    if not listing_id or raw_price is None or raw_price == "":
        raise ApiError(400, "ID ve fiyat alanları zorunludur")
    price = parse_price(raw_price)
    if price is None or price <= 0:
        raise ApiError(400, INVALID_PRICE_MESSAGE)

    listing = await _load_or_404(db, listing_id)
    listing.price = price
    await _commit_or_500(db, "Failed to update price")
    log.info("price updated id=%s price=%s", listing_id, price)
    return listing


async def update_title(db: AsyncSession, listing_id: str | None, title: str | None) -> Listing:
    if not listing_id or not title or not title.strip():
        raise ApiError(400, "ID ve başlık alanları zorunludur")

    listing = await _load_or_404(db, listing_id)
    listing.title = title.strip()
    await _commit_or_500(db, "Failed to update title")
    log.info("title updated id=%s", listing_id)
    return listing


# -------- deletes --------

@dataclass(frozen=True)
class ListingDeleteResult:
    listing_id: str
    deleted_blobs: int = 0
    failed_blobs: list[str] = field(default_factory=list)
    deleted_folders: list[str] = field(default_factory=list)


async def _delete_listing_rows(db: AsyncSession, listing_id: str) -> None:
    await db.execute(delete(Image).where(Image.listing_id == listing_id))
    for model in DETAIL_MODELS.values():
        await db.execute(delete(model).where(model.listing_id == listing_id))
    await db.execute(delete(Address).where(Address.listing_id == listing_id))
    await db.execute(delete(Listing).where(Listing.id == listing_id))


async def delete_listing(*, db: AsyncSession, store: MediaStore, listing_id: str) -> ListingDeleteResult:
    """
    Delete a listing and clean up its media.

    Rows go first; blobs and their folders are removed afterwards and storage
    failures are only logged. Only folders that held this listing's photos
    are touched.
    """
    exists = (await db.execute(select(Listing.id).where(Listing.id == listing_id))).scalar_one_or_none()
    if exists is None:
        raise ApiError(404, "Listing not found")

    storage_ids = list(
        (await db.execute(select(Image.cloudinary_id).where(Image.listing_id == listing_id))).scalars().all()
    )

    try:
        await _delete_listing_rows(db, listing_id)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        log.exception("listing delete failed id=%s", listing_id)
        raise ApiError(500, "Failed to delete listing", str(e)) from e

    deleted = 0
    failed: list[str] = []
    for sid in storage_ids:
        if await delete_photo_blob(store, sid):
            deleted += 1
        else:
            failed.append(sid)

    folders: list[str] = []
    for folder in dict.fromkeys(folder_of(sid) for sid in storage_ids):
        if not folder:
            continue
        if await store.delete_folder(folder):
            folders.append(folder)
        else:
            log.warning("folder cleanup failed path=%s listing=%s", folder, listing_id)

    log.info("listing deleted id=%s blobs=%d/%d folders=%d", listing_id, deleted, len(storage_ids), len(folders))
    return ListingDeleteResult(listing_id=listing_id, deleted_blobs=deleted, failed_blobs=failed, deleted_folders=folders)


async def delete_temp_listing(
    *,
    db: AsyncSession,
    store: MediaStore,
    listing_id: str,
    folder_path: str | None = None,
) -> bool:
    """Discard an abandoned wizard listing. Missing rows are not an error."""
    try:
        await _delete_listing_rows(db, listing_id)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        log.exception("temp listing delete failed id=%s", listing_id)
        raise ApiError(500, "Failed to delete temporary listing", str(e)) from e

    folder_cache.forget(listing_id)
    if not folder_path:
        return True
    ok = await store.delete_folder(folder_path)
    if not ok:
        log.warning("temp folder cleanup failed path=%s listing=%s", folder_path, listing_id)
    return ok


async def delete_image(*, db: AsyncSession, store: MediaStore, storage_id: str) -> bool:
    """Delete one photo row, then its blob. Returns whether the blob went too."""
    if not storage_id:
        raise ApiError(400, "Image ID is required")

    try:
        row = (await db.execute(select(Image).where(Image.cloudinary_id == storage_id))).scalar_one_or_none()
        if row is None:
            raise ApiError(404, "Image not found")
        await db.delete(row)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        log.exception("image row delete failed %s", storage_id)
        raise ApiError(500, "Failed to delete image", str(e)) from e

    return await delete_photo_blob(store, storage_id)


# -------- duplicate --------

async def duplicate_listing(
    *,
    db: AsyncSession,
    store: MediaStore,
    listing_id: str,
    new_title: str | None = None,
) -> Listing:
    """
    Copy a listing under a new id: inactive, not featured, same details and
    address. Photos are copied remote-to-remote into the new listing's own
    folder; a photo that fails to copy is skipped.
    """
    source = await get_listing(db, listing_id)
    if source is None:
        raise ApiError(404, "Listing not found")

    title = (new_title or "").strip() or f"{source.title} (Kopya)"
    new_id = new_listing_id()
    detail = listing_detail_row(source)
    source_images = [(img.cloudinary_id, img.url, img.order_index, img.is_cover) for img in source.images]

    try:
        clone = Listing(
            id=new_id,
            title=title,
            description=source.description,
            price=source.price,
            property_type=source.property_type,
            listing_status=source.listing_status,
            is_active=False,
            is_featured=False,
        )
        db.add(clone)
        await db.flush()
        if detail is not None:
            model = DETAIL_MODELS[source.property_type]
            db.add(model(listing_id=new_id, **row_values(detail)))
        if source.address is not None:
            db.add(Address(listing_id=new_id, **row_values(source.address)))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        log.exception("duplicate failed source=%s", listing_id)
        raise ApiError(500, "Failed to duplicate listing", str(e)) from e

    folder = f"{listing_base_folder(source.property_type)}/{new_id}"
    copied = 0
    for sid, url, order_index, is_cover in source_images:
        public_id = sid.rsplit("/", 1)[-1]
        try:
            stored = await store.upload_from_url(url=url, folder=folder, public_id=public_id)
        except MediaStoreError:
            log.warning("photo copy failed %s -> %s", sid, folder)
            continue
        try:
            db.add(Image(
                listing_id=new_id,
                cloudinary_id=stored.id,
                url=stored.url,
                order_index=order_index,
                is_cover=is_cover,
            ))
            await db.commit()
            copied += 1
        except SQLAlchemyError:
            await db.rollback()
            log.exception("image row for copied photo failed %s", stored.id)

    log.info("listing duplicated %s -> %s photos=%d/%d", listing_id, new_id, copied, len(source_images))
    return clone
