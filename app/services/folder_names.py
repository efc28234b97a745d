from __future__ import annotations

import re

from app.core.config import settings


_TURKISH_ASCII = str.maketrans({
    "ç": "c", "Ç": "c",
    "ğ": "g", "Ğ": "g",
    "ı": "i", "İ": "i",
    "ö": "o", "Ö": "o",
    "ş": "s", "Ş": "s",
    "ü": "u", "Ü": "u",
})

_WHITESPACE = re.compile(r"\s+")
_NOT_SLUG = re.compile(r"[^a-z0-9-]")
_DASHES = re.compile(r"-+")


def _slug(title: str) -> str:
    # transliterate before lower() so "İ" does not turn into "i" + combining dot
    s = title.translate(_TURKISH_ASCII).lower()
    s = _WHITESPACE.sub("-", s)
    s = _NOT_SLUG.sub("", s)
    return _DASHES.sub("-", s)


def sanitize_title(title: str, *, max_length: int | None = None) -> str:
    """
    Folder-safe slug for a listing title.

    Deterministic but not collision-free: titles that share their first
    `max_length` slug characters map to the same folder name.
    """
    limit = settings.folder_name_max_length if max_length is None else max_length
    return _slug(title)[:limit]


def slugify(title: str) -> str:
    """URL slug for a listing title (untruncated, no edge dashes)."""
    return _slug(title).strip("-")


def folder_of(storage_id: str) -> str:
    """Folder part of a storage id ("root/konut/x/image_0" -> "root/konut/x")."""
    parts = storage_id.split("/")
    return "/".join(parts[:-1])


def listing_base_folder(property_type: str) -> str:
    return f"{settings.media_root_folder}/{property_type}"


def listing_folder(property_type: str, title: str | None, fallback: str) -> str:
    name = sanitize_title(title) if title else ""
    return f"{listing_base_folder(property_type)}/{name or fallback}"


def rename_target(old_folder: str, title: str) -> str:
    """Same parent folder, last segment replaced by the slug of `title`."""
    parent = folder_of(old_folder)
    slug = sanitize_title(title)
    return f"{parent}/{slug}" if parent else slug


def rewrite_storage_id(storage_id: str, old_folder: str, new_folder: str) -> str:
    if old_folder and storage_id.startswith(old_folder + "/"):
        return new_folder + storage_id[len(old_folder):]
    return storage_id


def rewrite_media_url(url: str, old_folder: str, new_folder: str) -> str:
    """Delivery URLs embed the storage id, so a folder move rewrites them in place."""
    marker = f"/{old_folder}/"
    if not old_folder or marker not in url:
        return url
    return url.replace(marker, f"/{new_folder}/", 1)
