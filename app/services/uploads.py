from __future__ import annotations

import logging
import time
from collections import OrderedDict

from app.core.config import settings
from app.services.folder_names import listing_base_folder, sanitize_title
from app.services.storage import MediaStore, MediaStoreError, StoredMedia


log = logging.getLogger(__name__)

MAX_NUMBERED_SUFFIX = 9


class FolderCache:
    """
    Folder chosen for each (property type, listing id) upload session.

    Per-process only: photos of one wizard session land in one folder as long
    as they hit the same worker. Least recently used sessions are dropped
    once `max_size` is reached.
    """

    def __init__(self, max_size: int | None = None) -> None:
        self.max_size = settings.upload_folder_cache_size if max_size is None else max_size
        self._folders: OrderedDict[tuple[str, str], str] = OrderedDict()

    @staticmethod
    def key(property_type: str, listing_id: str) -> str:
        return f"{property_type}_{listing_id}"

    def __len__(self) -> int:
        return len(self._folders)

    def get(self, property_type: str, listing_id: str) -> str | None:
        k = (property_type, listing_id)
        folder = self._folders.get(k)
        if folder is not None:
            self._folders.move_to_end(k)
        return folder

    def put(self, property_type: str, listing_id: str, folder: str) -> None:
        k = (property_type, listing_id)
        self._folders[k] = folder
        self._folders.move_to_end(k)
        while len(self._folders) > self.max_size:
            self._folders.popitem(last=False)

    def forget(self, listing_id: str) -> None:
        """Drop the sessions of a listing that was saved or discarded."""
        for k in [k for k in self._folders if k[1] == listing_id]:
            del self._folders[k]

    def clear(self) -> None:
        self._folders.clear()


folder_cache = FolderCache()


async def _first_free_folder(store: MediaStore, base: str) -> str:
    if not await store.folder_in_use(base):
        return base
    for n in range(1, MAX_NUMBERED_SUFFIX + 1):
        candidate = f"{base}-{n}"
        if not await store.folder_in_use(candidate):
            return candidate
    return f"{base}-{int(time.time() * 1000)}"


async def resolve_upload_folder(
    *,
    store: MediaStore,
    cache: FolderCache,
    property_type: str,
    listing_id: str,
    title: str | None = None,
    existing_folder: str | None = None,
) -> str:
    """
    Pick the storage folder for a wizard upload.

    An explicit existing folder wins, then the folder already picked for this
    session. Otherwise the title slug (or the listing id) under the category
    folder, suffixed -1..-9 when taken and with a timestamp after that.
    """
    if existing_folder:
        cache.put(property_type, listing_id, existing_folder)
        return existing_folder

    cached = cache.get(property_type, listing_id)
    if cached:
        return cached

    name = sanitize_title(title) if title else ""
    base = f"{listing_base_folder(property_type)}/{name or listing_id}"
    try:
        folder = await _first_free_folder(store, base)
    except MediaStoreError:
        log.warning("folder lookup failed for %s, using timestamp suffix", base)
        folder = f"{base}-{int(time.time() * 1000)}"

    cache.put(property_type, listing_id, folder)
    log.info("upload folder for %s: %s", FolderCache.key(property_type, listing_id), folder)
    return folder


async def upload_listing_photo(
    *,
    store: MediaStore,
    data: bytes,
    property_type: str,
    listing_id: str,
    index: int,
    title: str | None = None,
    existing_folder: str | None = None,
    cache: FolderCache = folder_cache,
) -> StoredMedia:
    folder = await resolve_upload_folder(
        store=store,
        cache=cache,
        property_type=property_type,
        listing_id=listing_id,
        title=title,
        existing_folder=existing_folder,
    )
    return await store.upload(data=data, folder=folder, public_id=f"image_{index}")
