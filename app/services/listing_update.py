from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.address import Address
from app.models.arsa_details import ArsaDetails
from app.models.image import Image
from app.models.konut_details import KonutDetails
from app.models.listing import Listing
from app.models.ticari_details import TicariDetails
from app.models.vasita_details import VasitaDetails
from app.schemas.listing import AddressIn, ListingWriteIn
from app.services.category_details import (
    PROPERTY_TYPES,
    DetailRecord,
    MappingAction,
    detail_columns,
    map_details,
    normalize_enum_field,
)
from app.services.folder_names import rename_target
from app.services.images import delete_photo, load_photo_snapshot
from app.services.media_reconciler import FolderRenameOutcome, rename_listing_folder
from app.services.photo_diff import IncomingPhoto, diff_photos
from app.services.storage import MediaStore


log = logging.getLogger(__name__)

StepStatus = Literal["ok", "soft_fail", "hard_fail", "skipped"]
ErrorKind = Literal["validation", "not_found", "conflict", "persistence"]

DETAIL_MODELS: dict[str, type] = {
    "konut": KonutDetails,
    "ticari": TicariDetails,
    "arsa": ArsaDetails,
    "vasita": VasitaDetails,
}

MISSING_FIELDS_MESSAGE = "Missing required fields"
INVALID_PRICE_MESSAGE = "Geçerli bir fiyat girilmelidir"


@dataclass(frozen=True)
class StepResult:
    step: str
    status: StepStatus
    message: str | None = None


@dataclass(frozen=True)
class WriteOutcome:
    ok: bool
    listing_id: str | None
    error_kind: ErrorKind | None = None
    error_message: str | None = None
    error_details: str | None = None
    steps: list[StepResult] = field(default_factory=list)


@dataclass(frozen=True)
class ValidatedListing:
    id: str | None
    title: str
    description: str
    price: float
    property_type: str
    listing_status: str
    detail: DetailRecord


def _invalid(message: str, listing_id: str | None = None) -> WriteOutcome:
    return WriteOutcome(
        ok=False,
        listing_id=listing_id,
        error_kind="validation",
        error_message=message,
        steps=[StepResult("validate", "hard_fail", message)],
    )


def validate_listing_payload(
    payload: ListingWriteIn,
    *,
    action: MappingAction,
    require_id: bool = True,
) -> ValidatedListing | WriteOutcome:
    """
    Check required core fields and map category details.

    Runs before anything is written, so a rejected payload leaves every table
    untouched.
    """
    required = [payload.title, payload.description, payload.price, payload.property_type]
    if require_id:
        required.append(payload.id)
    if any(v is None or v == "" for v in required):
        return _invalid(MISSING_FIELDS_MESSAGE, payload.id)

    assert payload.price is not None
    if payload.price <= 0:
        return _invalid(INVALID_PRICE_MESSAGE, payload.id)

    property_type = str(payload.property_type)
    if property_type not in PROPERTY_TYPES:
        res = map_details(property_type, {}, action=action)
        return _invalid(res.error_message or MISSING_FIELDS_MESSAGE, payload.id)

    mapped = map_details(property_type, payload.detail_fields(), action=action)
    if not mapped.ok:
        assert mapped.error_message is not None
        return _invalid(mapped.error_message, payload.id)
    assert mapped.record is not None

    # vehicles are only ever sold
    if property_type == "vasita":
        status = "satilik"
    else:
        status = normalize_enum_field(payload.listing_status) or "satilik"

    return ValidatedListing(
        id=payload.id,
        title=str(payload.title).strip(),
        description=str(payload.description),
        price=float(payload.price),
        property_type=property_type,
        listing_status=status,
        detail=mapped.record,
    )


def rename_intent(payload: ListingWriteIn, title: str) -> tuple[str, str] | None:
    fr = payload.folderRename
    if fr is None or not fr.oldPath:
        return None
    new_path = fr.newPath or rename_target(fr.oldPath, title)
    return fr.oldPath, new_path


def remap_photos(
    outcome: FolderRenameOutcome,
    photos: list[IncomingPhoto],
    delete_ids: list[str],
) -> tuple[list[IncomingPhoto], list[str]]:
    """Point payload photo ids at the folder they live in after a rename."""
    photos = [
        IncomingPhoto(
            storage_id=outcome.new_id_for(p.storage_id),
            url=outcome.new_url_for(p.storage_id, p.url),
            is_existing=p.is_existing,
        )
        for p in photos
    ]
    delete_ids = [outcome.new_id_for(sid) for sid in delete_ids]
    return photos, delete_ids


async def write_details(db: AsyncSession, listing_id: str, record: DetailRecord) -> None:
    """Upsert the detail row for the record's category and drop rows of other categories."""
    for pt, model in DETAIL_MODELS.items():
        if pt != record.property_type:
            await db.execute(delete(model).where(model.listing_id == listing_id))

    model = DETAIL_MODELS[record.property_type]
    values = detail_columns(record)
    existing = (await db.execute(select(model).where(model.listing_id == listing_id))).scalar_one_or_none()
    if existing is None:
        db.add(model(listing_id=listing_id, **values))
    else:
        for k, v in values.items():
            setattr(existing, k, v)
    await db.flush()


async def write_address(db: AsyncSession, listing_id: str, address: AddressIn) -> None:
    values = dict(
        province=address.province or settings.default_province,
        district=address.district or settings.default_district,
        neighborhood=address.neighborhood or None,
        full_address=address.full_address or None,
    )
    existing = (await db.execute(select(Address).where(Address.listing_id == listing_id))).scalar_one_or_none()
    if existing is None:
        db.add(Address(listing_id=listing_id, **values))
    else:
        for k, v in values.items():
            setattr(existing, k, v)
    await db.flush()


def incoming_photos(payload: ListingWriteIn) -> list[IncomingPhoto]:
    return [IncomingPhoto(storage_id=p.id, url=p.url, is_existing=p.isExisting) for p in payload.photos]


async def update_listing(
    *,
    db: AsyncSession,
    store: MediaStore,
    payload: ListingWriteIn,
) -> WriteOutcome:
    """
    Reconcile a resubmitted listing with the datastore and the media store.

    Stages run in a fixed order and each records a StepResult. Storage work
    is best-effort (soft_fail); datastore writes for the listing itself abort
    the run (hard_fail). Stages already committed are not undone.
    """
    validated = validate_listing_payload(payload, action="update")
    if isinstance(validated, WriteOutcome):
        log.info("update rejected id=%s: %s", payload.id, validated.error_message)
        return validated

    listing_id = validated.id
    assert listing_id is not None
    steps: list[StepResult] = [StepResult("validate", "ok")]

    exists = (await db.execute(select(Listing.id).where(Listing.id == listing_id))).scalar_one_or_none()
    if exists is None:
        return WriteOutcome(
            ok=False,
            listing_id=listing_id,
            error_kind="not_found",
            error_message="Listing not found",
            steps=steps + [StepResult("load", "hard_fail", "Listing not found")],
        )

    photos = incoming_photos(payload)
    delete_ids = list(dict.fromkeys(payload.photosToDelete))

    # folder rename
    intent = rename_intent(payload, validated.title)
    if intent is None:
        steps.append(StepResult("folder_rename", "skipped"))
    else:
        old_path, new_path = intent
        renamed = await rename_listing_folder(db=db, store=store, old_path=old_path, new_path=new_path)
        if renamed.success:
            photos, delete_ids = remap_photos(renamed, photos, delete_ids)
            if renamed.failed_rewrites:
                steps.append(StepResult(
                    "folder_rename", "soft_fail", f"{len(renamed.failed_rewrites)} image rows not rewritten"
                ))
            else:
                steps.append(StepResult("folder_rename", "ok"))
        else:
            steps.append(StepResult("folder_rename", "soft_fail", renamed.error_message))

    # explicit deletions
    failed_deletes = 0
    for sid in delete_ids:
        res = await delete_photo(db=db, store=store, storage_id=sid, listing_id=listing_id)
        if res.status != "deleted":
            failed_deletes += 1
    if not delete_ids:
        steps.append(StepResult("explicit_deletes", "skipped"))
    elif failed_deletes:
        steps.append(StepResult("explicit_deletes", "soft_fail", f"{failed_deletes} photos not fully deleted"))
    else:
        steps.append(StepResult("explicit_deletes", "ok"))

    # core fields, details and address commit together
    stage = "core_fields"
    try:
        await db.execute(
            update(Listing)
            .where(Listing.id == listing_id)
            .values(
                title=validated.title,
                description=validated.description,
                price=validated.price,
                property_type=validated.property_type,
                listing_status=validated.listing_status,
            )
        )
        stage = "details"
        await write_details(db, listing_id, validated.detail)
        stage = "address"
        if validated.property_type == "vasita":
            await db.execute(delete(Address).where(Address.listing_id == listing_id))
        elif payload.address is not None:
            await write_address(db, listing_id, payload.address)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        log.exception("listing update failed at %s id=%s", stage, listing_id)
        return WriteOutcome(
            ok=False,
            listing_id=listing_id,
            error_kind="persistence",
            error_message="Failed to update listing",
            error_details=str(e),
            steps=steps + [StepResult(stage, "hard_fail", str(e))],
        )
    steps += [StepResult("core_fields", "ok"), StepResult("details", "ok"), StepResult("address", "ok")]

    if not photos:
        steps.append(StepResult("photos", "skipped"))
        log.info("listing updated id=%s", listing_id)
        return WriteOutcome(ok=True, listing_id=listing_id, steps=steps)

    photo_step = await _reconcile_photos(db, store, listing_id, photos, delete_ids)
    steps.append(photo_step)
    if photo_step.status == "hard_fail":
        return WriteOutcome(
            ok=False,
            listing_id=listing_id,
            error_kind="persistence",
            error_message="Failed to update listing",
            error_details=photo_step.message,
            steps=steps,
        )

    log.info("listing updated id=%s", listing_id)
    return WriteOutcome(ok=True, listing_id=listing_id, steps=steps)


async def _reconcile_photos(
    db: AsyncSession,
    store: MediaStore,
    listing_id: str,
    photos: list[IncomingPhoto],
    explicit_delete_ids: list[str],
) -> StepResult:
    snapshot = await load_photo_snapshot(db, listing_id)
    diff = diff_photos(snapshot, photos, explicit_delete_ids)

    if diff.unknown_existing:
        log.warning("ignoring %d photos marked existing without a row: %s", len(diff.unknown_existing), diff.unknown_existing)

    problems: list[str] = []

    for sid in diff.implicit_deletes:
        log.info("implicitly deleting photo %s from listing %s", sid, listing_id)
        res = await delete_photo(db=db, store=store, storage_id=sid, listing_id=listing_id)
        if res.status != "deleted":
            problems.append(f"delete {sid}: {res.status}")

    if diff.to_insert:
        try:
            db.add_all([
                Image(
                    listing_id=listing_id,
                    cloudinary_id=ins.storage_id,
                    url=ins.url or "",
                    order_index=ins.order_index,
                    is_cover=ins.is_cover,
                )
                for ins in diff.to_insert
            ])
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            log.exception("inserting %d new photos failed id=%s", len(diff.to_insert), listing_id)
            return StepResult("photos", "hard_fail", f"Failed to insert new images: {e}")

    for upd in diff.order_updates:
        try:
            await db.execute(
                update(Image)
                .where(Image.listing_id == listing_id, Image.cloudinary_id == upd.storage_id)
                .values(order_index=upd.order_index, is_cover=upd.is_cover)
            )
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            log.exception("reorder failed photo=%s id=%s", upd.storage_id, listing_id)
            problems.append(f"reorder {upd.storage_id}")

    if problems:
        return StepResult("photos", "soft_fail", "; ".join(problems))
    return StepResult("photos", "ok")
