from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Protocol, runtime_checkable

import cloudinary
import cloudinary.api
import cloudinary.exceptions
import cloudinary.uploader

from app.core.config import settings


log = logging.getLogger(__name__)

# destroy() treats an already-missing blob as deleted
_DESTROY_OK = ("ok", "not found")
_ADMIN_DELETE_OK = ("deleted", "not_found")

UPLOAD_TRANSFORMATION = [
    {
        "quality": "auto:good",
        "fetch_format": "auto",
        "dpr": "auto",
        # only downsizes very large originals
        "width": 2000,
        "height": 2000,
        "crop": "limit",
    }
]


@dataclass(frozen=True)
class StoredMedia:
    id: str
    url: str


@dataclass(frozen=True)
class MovedResource:
    old_id: str
    new_id: str
    new_url: str


@dataclass(frozen=True)
class FolderRenameResult:
    success: bool
    moved: list[MovedResource] = field(default_factory=list)
    error_message: str | None = None


class MediaStoreError(Exception):
    pass


def _folder_prefix(path: str) -> str:
    # Cloudinary prefixes are plain string matches: "x/ev" would also hit "x/ev-1/..."
    return path.rstrip("/") + "/"


@runtime_checkable
class MediaStore(Protocol):
    """
    Remote blob storage for listing photos.

    Deletion and rename report failure through their return values. Uploads
    and folder lookups raise MediaStoreError; a failed upload leaves nothing
    to reconcile.

    Folder operations cover that folder only, never siblings that share a
    name prefix ("x/ev" vs "x/ev-1").
    """

    async def upload(self, *, data: bytes, folder: str, public_id: str) -> StoredMedia:
        ...

    async def upload_from_url(self, *, url: str, folder: str, public_id: str) -> StoredMedia:
        ...

    async def destroy(self, storage_id: str) -> bool:
        ...

    async def delete_admin(self, storage_id: str) -> bool:
        ...

    async def rename_folder(self, old_path: str, new_path: str) -> FolderRenameResult:
        ...

    async def delete_folder(self, path: str) -> bool:
        ...

    async def folder_in_use(self, path: str) -> bool:
        ...

    async def list_resources(self, prefix: str) -> list[StoredMedia]:
        ...


class CloudinaryMediaStore:
    """
    MediaStore backed by the Cloudinary SDK.

    The SDK is blocking, so every call runs in a worker thread.
    """

    def __init__(
        self,
        *,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        search_max_results: int = 500,
    ):
        cloudinary.config(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret, secure=True)
        self._max_results = search_max_results

    async def _call(self, fn, *args: Any, **kwargs: Any) -> Any:
        return await asyncio.to_thread(fn, *args, **kwargs)

    async def upload(self, *, data: bytes, folder: str, public_id: str) -> StoredMedia:
        return await self._upload(data, folder=folder, public_id=public_id)

    async def upload_from_url(self, *, url: str, folder: str, public_id: str) -> StoredMedia:
        # Cloudinary fetches remote URLs itself, no download round-trip needed
        return await self._upload(url, folder=folder, public_id=public_id)

    async def _upload(self, source: Any, *, folder: str, public_id: str) -> StoredMedia:
        try:
            res = await self._call(
                cloudinary.uploader.upload,
                source,
                folder=folder,
                public_id=public_id,
                overwrite=True,
                resource_type="auto",
                use_filename=False,
                unique_filename=False,
                transformation=UPLOAD_TRANSFORMATION,
            )
        except Exception as e:
            log.exception("upload failed folder=%s public_id=%s", folder, public_id)
            raise MediaStoreError(f"upload failed: {e}") from e
        return StoredMedia(id=res["public_id"], url=res["secure_url"])

    async def destroy(self, storage_id: str) -> bool:
        try:
            res = await self._call(cloudinary.uploader.destroy, storage_id, resource_type="image")
        except Exception:
            log.exception("destroy failed storage_id=%s", storage_id)
            return False
        result = (res or {}).get("result")
        if result not in _DESTROY_OK:
            log.warning("destroy rejected storage_id=%s result=%s", storage_id, result)
            return False
        return True

    async def delete_admin(self, storage_id: str) -> bool:
        try:
            res = await self._call(cloudinary.api.delete_resources, [storage_id], resource_type="image")
        except Exception:
            log.exception("admin delete failed storage_id=%s", storage_id)
            return False
        status = ((res or {}).get("deleted") or {}).get(storage_id)
        if status not in _ADMIN_DELETE_OK:
            log.warning("admin delete rejected storage_id=%s status=%s", storage_id, status)
            return False
        return True

    async def _list_folder(self, path: str) -> list[dict[str, Any]]:
        search = cloudinary.Search().expression(f'folder:"{path}"').max_results(self._max_results)
        res = await self._call(search.execute)
        return list((res or {}).get("resources") or [])

    async def rename_folder(self, old_path: str, new_path: str) -> FolderRenameResult:
        if old_path == new_path:
            log.info("rename skipped, folder unchanged path=%s", old_path)
            return FolderRenameResult(success=True)

        try:
            await self._call(cloudinary.api.rename_folder, old_path, new_path)
        except Exception as e:
            log.exception("rename_folder failed %s -> %s", old_path, new_path)
            return FolderRenameResult(success=False, error_message=str(e))

        try:
            resources = await self._list_folder(new_path)
        except Exception as e:
            # folder moved but we cannot tell which ids changed
            log.exception("listing renamed folder failed path=%s", new_path)
            return FolderRenameResult(success=True, error_message=str(e))

        moved = []
        for r in resources:
            new_id = r["public_id"]
            old_id = old_path + new_id[len(new_path):] if new_id.startswith(new_path + "/") else new_id
            moved.append(MovedResource(old_id=old_id, new_id=new_id, new_url=r.get("secure_url", "")))
        log.info("renamed folder %s -> %s (%d resources)", old_path, new_path, len(moved))
        return FolderRenameResult(success=True, moved=moved)

    async def delete_folder(self, path: str) -> bool:
        try:
            await self._call(cloudinary.api.delete_resources_by_prefix, _folder_prefix(path))
        except Exception:
            # keep going, the folder delete below reports the final outcome
            log.exception("delete_resources_by_prefix failed path=%s", path)
        try:
            await self._call(cloudinary.api.delete_folder, path)
        except cloudinary.exceptions.NotFound:
            return True
        except Exception:
            log.exception("delete_folder failed path=%s", path)
            return False
        return True

    async def folder_in_use(self, path: str) -> bool:
        try:
            res = await self._call(cloudinary.api.resources, type="upload", prefix=_folder_prefix(path), max_results=1)
        except cloudinary.exceptions.NotFound:
            return False
        except Exception as e:
            raise MediaStoreError(f"folder lookup failed: {e}") from e
        return bool((res or {}).get("resources"))

    async def list_resources(self, prefix: str) -> list[StoredMedia]:
        out: list[StoredMedia] = []
        cursor = None
        while True:
            kwargs: dict[str, Any] = {"type": "upload", "prefix": _folder_prefix(prefix), "max_results": self._max_results}
            if cursor:
                kwargs["next_cursor"] = cursor
            try:
                res = await self._call(cloudinary.api.resources, **kwargs)
            except Exception as e:
                raise MediaStoreError(f"resource listing failed: {e}") from e
            for r in (res or {}).get("resources") or []:
                out.append(StoredMedia(id=r["public_id"], url=r.get("secure_url", "")))
            cursor = (res or {}).get("next_cursor")
            if not cursor:
                return out


@lru_cache(maxsize=1)
def _default_store() -> CloudinaryMediaStore:
    return CloudinaryMediaStore(
        cloud_name=settings.cloudinary_cloud_name,
        api_key=settings.cloudinary_api_key,
        api_secret=settings.cloudinary_api_secret.get_secret_value(),
        search_max_results=settings.search_max_results,
    )


def get_media_store() -> MediaStore:
    return _default_store()
