from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.errors import ApiError
from app.models.listing import Listing
from app.schemas.listing import (
    AddressOut,
    DeleteOut,
    DuplicateIn,
    ImageOut,
    ListingFieldOut,
    ListingFlagsIn,
    ListingOut,
    ListingSummaryOut,
    ListingWriteIn,
    ListingWriteOut,
    PriceUpdateIn,
    TitleUpdateIn,
    WriteStepOut,
)
from app.services.listing_update import WriteOutcome, update_listing
from app.services.listings import (
    create_listing,
    delete_image,
    delete_listing,
    delete_temp_listing,
    duplicate_listing,
    get_listing,
    get_listing_by_slug,
    list_active_listings,
    listing_detail_row,
    row_values,
    set_listing_flags,
    thumbnail_url,
    update_price,
    update_title,
)
from app.services.storage import MediaStore, get_media_store

router = APIRouter()

_ERROR_STATUS = {
    "validation": 400,
    "not_found": 404,
    "conflict": 409,
    "persistence": 500,
}


def _raise_for_outcome(outcome: WriteOutcome) -> None:
    if outcome.ok:
        return
    status = _ERROR_STATUS.get(outcome.error_kind or "persistence", 500)
    raise ApiError(status, outcome.error_message or "Failed to update listing", outcome.error_details)


def _write_out(outcome: WriteOutcome, message: str) -> ListingWriteOut:
    assert outcome.listing_id is not None
    return ListingWriteOut(
        id=outcome.listing_id,
        message=message,
        steps=[WriteStepOut(step=s.step, status=s.status, message=s.message) for s in outcome.steps],
    )


def _listing_out(listing: Listing) -> ListingOut:
    detail = listing_detail_row(listing)
    address = listing.address
    return ListingOut(
        id=listing.id,
        title=listing.title,
        description=listing.description,
        price=listing.price,
        property_type=listing.property_type,
        listing_status=listing.listing_status,
        is_active=listing.is_active,
        is_featured=listing.is_featured,
        views_count=listing.views_count,
        contact_count=listing.contact_count,
        images=[
            ImageOut(
                id=i.id,
                cloudinary_id=i.cloudinary_id,
                url=i.url,
                order_index=i.order_index,
                is_cover=i.is_cover,
            )
            for i in listing.images
        ],
        address=AddressOut(**row_values(address)) if address is not None else None,
        details=row_values(detail) if detail is not None else None,
    )


@router.put("/listings/update", response_model=ListingWriteOut)
async def update_listing_endpoint(
    payload: ListingWriteIn,
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
) -> ListingWriteOut:
    outcome = await update_listing(db=db, store=store, payload=payload)
    _raise_for_outcome(outcome)
    return _write_out(outcome, "Listing updated successfully")


@router.post("/listings", response_model=ListingWriteOut, status_code=201)
async def create_listing_endpoint(
    payload: ListingWriteIn,
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
) -> ListingWriteOut:
    outcome = await create_listing(db=db, store=store, payload=payload)
    _raise_for_outcome(outcome)
    return _write_out(outcome, "Listing created successfully")


@router.get("/listings", response_model=list[ListingSummaryOut])
async def list_listings(db: AsyncSession = Depends(get_db)) -> list[ListingSummaryOut]:
    rows = await list_active_listings(db)
    return [
        ListingSummaryOut(
            id=r.id,
            title=r.title,
            price=r.price,
            property_type=r.property_type,
            listing_status=r.listing_status,
            is_featured=r.is_featured,
            thumbnail_url=thumbnail_url(r),
        )
        for r in rows
    ]


@router.get("/listings/by-slug/{slug}", response_model=ListingOut)
async def get_listing_by_slug_endpoint(
    slug: str,
    include_inactive: bool = Query(default=False),
    db: AsyncSession = Depends(get_db),
) -> ListingOut:
    listing = await get_listing_by_slug(db, slug, include_inactive=include_inactive)
    if listing is None:
        raise ApiError(404, "Listing not found")
    return _listing_out(listing)


@router.patch("/listings", response_model=ListingFieldOut)
async def patch_listing_flags(payload: ListingFlagsIn, db: AsyncSession = Depends(get_db)) -> ListingFieldOut:
    listing = await set_listing_flags(
        db, payload.id, is_featured=payload.is_featured, is_active=payload.is_active
    )
    return ListingFieldOut(id=listing.id, is_featured=listing.is_featured, is_active=listing.is_active)


@router.put("/listings/update/price", response_model=ListingFieldOut)
async def update_price_endpoint(payload: PriceUpdateIn, db: AsyncSession = Depends(get_db)) -> ListingFieldOut:
    listing = await update_price(db, payload.id, payload.price)
    return ListingFieldOut(id=listing.id, price=listing.price)


@router.put("/listings/update/title", response_model=ListingFieldOut)
async def update_title_endpoint(payload: TitleUpdateIn, db: AsyncSession = Depends(get_db)) -> ListingFieldOut:
    listing = await update_title(db, payload.id, payload.title)
    return ListingFieldOut(id=listing.id, title=listing.title)


@router.post("/listings/duplicate", response_model=ListingWriteOut, status_code=201)
async def duplicate_listing_endpoint(
    payload: DuplicateIn,
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
) -> ListingWriteOut:
    clone = await duplicate_listing(db=db, store=store, listing_id=payload.listingId, new_title=payload.newTitle)
    return ListingWriteOut(id=clone.id, message="Listing duplicated successfully")


@router.delete("/listings/images", response_model=DeleteOut)
async def delete_image_endpoint(
    id: str = Query(default=""),
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
) -> DeleteOut:
    blob_deleted = await delete_image(db=db, store=store, storage_id=id)
    return DeleteOut(
        id=id,
        deleted_blobs=1 if blob_deleted else 0,
        failed_blobs=[] if blob_deleted else [id],
    )


@router.delete("/listings/temp/{listing_id}", response_model=DeleteOut)
async def delete_temp_listing_endpoint(
    listing_id: str,
    folder: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
) -> DeleteOut:
    folder_deleted = await delete_temp_listing(db=db, store=store, listing_id=listing_id, folder_path=folder)
    return DeleteOut(id=listing_id, deleted_folders=[folder] if folder and folder_deleted else [])


@router.get("/listings/{listing_id}", response_model=ListingOut)
async def get_listing_endpoint(listing_id: str, db: AsyncSession = Depends(get_db)) -> ListingOut:
    listing = await get_listing(db, listing_id)
    if listing is None:
        raise ApiError(404, "Listing not found")
    return _listing_out(listing)


@router.delete("/listings/{listing_id}", response_model=DeleteOut)
async def delete_listing_endpoint(
    listing_id: str,
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
) -> DeleteOut:
    res = await delete_listing(db=db, store=store, listing_id=listing_id)
    return DeleteOut(
        id=listing_id,
        deleted_blobs=res.deleted_blobs,
        failed_blobs=res.failed_blobs,
        deleted_folders=res.deleted_folders,
    )
