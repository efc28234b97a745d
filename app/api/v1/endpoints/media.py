from fastapi import APIRouter, Depends, Query

from app.core.errors import ApiError
from app.schemas.media import MediaDeleteOut
from app.services.media_reconciler import delete_photo_blob
from app.services.storage import MediaStore, get_media_store

router = APIRouter()


@router.delete("/media", response_model=MediaDeleteOut)
async def delete_media(
    id: str = Query(default=""),
    store: MediaStore = Depends(get_media_store),
) -> MediaDeleteOut:
    # storage only; image rows are owned by the listing endpoints
    if not id:
        raise ApiError(400, "Media ID is required")
    ok = await delete_photo_blob(store, id)
    if not ok:
        raise ApiError(500, "Failed to delete media")
    return MediaDeleteOut(success=True, id=id)
