from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PhotoIn(BaseModel):
    id: str
    url: str | None = None
    isExisting: bool = False


class FolderRenameIn(BaseModel):
    oldPath: str | None = None
    newPath: str | None = None


class AddressIn(BaseModel):
    province: str | None = None
    district: str | None = None
    neighborhood: str | None = None
    full_address: str | None = None


class ListingWriteIn(BaseModel):
    """
    Admin form submission for create and full update.

    Category detail fields arrive flat alongside the core fields (e.g.
    `konut_type`, `room_count`), so unknown keys are kept and handed to the
    detail mapper as-is. Required-ness is checked by the service, not here,
    so missing values produce domain messages instead of 422s.
    """
    model_config = ConfigDict(extra="allow")

    id: str | None = None
    title: str | None = None
    description: str | None = None
    price: float | None = None
    property_type: str | None = None
    listing_status: str | None = None

    photos: list[PhotoIn] = Field(default_factory=list)
    photosToDelete: list[str] = Field(default_factory=list)
    folderRename: FolderRenameIn | None = None
    address: AddressIn | None = None

    def detail_fields(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class ListingFlagsIn(BaseModel):
    id: str
    is_featured: bool | None = None
    is_active: bool | None = None


class PriceUpdateIn(BaseModel):
    id: str | None = None
    price: Any = None


class TitleUpdateIn(BaseModel):
    id: str | None = None
    title: str | None = None


class DuplicateIn(BaseModel):
    listingId: str
    newTitle: str | None = None


class ImageOut(BaseModel):
    id: str
    cloudinary_id: str
    url: str
    order_index: int
    is_cover: bool


class AddressOut(BaseModel):
    province: str
    district: str
    neighborhood: str | None
    full_address: str | None


class ListingOut(BaseModel):
    id: str
    title: str
    description: str
    price: float
    property_type: str
    listing_status: str
    is_active: bool
    is_featured: bool
    views_count: int
    contact_count: int
    images: list[ImageOut]
    address: AddressOut | None
    details: dict[str, Any] | None


class ListingSummaryOut(BaseModel):
    id: str
    title: str
    price: float
    property_type: str
    listing_status: str
    is_featured: bool
    thumbnail_url: str | None


class WriteStepOut(BaseModel):
    step: str
    status: str
    message: str | None = None


class ListingWriteOut(BaseModel):
    success: bool = True
    id: str
    message: str
    steps: list[WriteStepOut] = Field(default_factory=list)


class ListingFieldOut(BaseModel):
    success: bool = True
    id: str
    price: float | None = None
    title: str | None = None
    is_featured: bool | None = None
    is_active: bool | None = None


class DeleteOut(BaseModel):
    success: bool = True
    id: str
    deleted_blobs: int = 0
    failed_blobs: list[str] = Field(default_factory=list)
    deleted_folders: list[str] = Field(default_factory=list)
