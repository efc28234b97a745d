from fastapi import APIRouter, Depends, File, Form, UploadFile

from app.core.errors import ApiError
from app.schemas.media import UploadOut
from app.services.category_details import PROPERTY_TYPES
from app.services.storage import MediaStore, MediaStoreError, get_media_store
from app.services.uploads import upload_listing_photo

router = APIRouter()


@router.post("/uploads", response_model=UploadOut)
async def upload_photo(
    file: UploadFile = File(...),
    propertyType: str = Form(...),
    listingId: str = Form(...),
    index: int = Form(0),
    title: str | None = Form(None),
    existingFolder: str | None = Form(None),
    store: MediaStore = Depends(get_media_store),
) -> UploadOut:
    if propertyType not in PROPERTY_TYPES:
        raise ApiError(400, "Invalid property type")
    if not listingId:
        raise ApiError(400, "Listing ID is required")

    data = await file.read()
    if not data:
        raise ApiError(400, "No file uploaded")

    try:
        stored = await upload_listing_photo(
            store=store,
            data=data,
            property_type=propertyType,
            listing_id=listingId,
            index=index,
            title=title,
            existing_folder=existingFolder,
        )
    except MediaStoreError as e:
        raise ApiError(500, "Upload failed", str(e)) from e

    return UploadOut(id=stored.id, url=stored.url, folder=stored.id.rsplit("/", 1)[0])
