from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence


@dataclass(frozen=True)
class PhotoRow:
    """A photo as currently recorded in the datastore."""
    storage_id: str
    order_index: int
    is_cover: bool
    url: str | None = None


@dataclass(frozen=True)
class IncomingPhoto:
    """A photo as submitted by the admin UI."""
    storage_id: str
    url: str | None = None
    is_existing: bool = True


@dataclass(frozen=True)
class PhotoInsert:
    storage_id: str
    url: str | None
    order_index: int
    is_cover: bool


@dataclass(frozen=True)
class PhotoOrderUpdate:
    storage_id: str
    order_index: int
    is_cover: bool


@dataclass(frozen=True)
class PhotoDiff:
    to_insert: list[PhotoInsert] = field(default_factory=list)
    to_delete: list[str] = field(default_factory=list)
    # subset of to_delete: known ids that vanished without an explicit delete
    implicit_deletes: list[str] = field(default_factory=list)
    final_order: list[str] = field(default_factory=list)
    order_updates: list[PhotoOrderUpdate] = field(default_factory=list)
    # "existing" ids the datastore has no row for; they cannot be ordered
    unknown_existing: list[str] = field(default_factory=list)


def _unique(ids: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for i in ids:
        if i and i not in seen:
            seen.add(i)
            out.append(i)
    return out


def diff_photos(
    previous: Sequence[PhotoRow],
    incoming: Sequence[IncomingPhoto],
    explicit_delete_ids: Sequence[str] = (),
) -> PhotoDiff:
    """
    Compare the recorded photo set of a listing with a resubmitted one.

    The final sequence is the existing photos in the order the client sent
    them followed by new uploads in upload order. Index 0 is the cover.
    Previously recorded photos that are absent from the submission are deleted
    even when the client did not flag them (implicit deletion).
    """
    previous_by_id = {p.storage_id: p for p in previous}
    explicit = _unique(explicit_delete_ids)
    explicit_set = set(explicit)

    existing_segment: list[str] = []
    new_segment: list[IncomingPhoto] = []
    unknown_existing: list[str] = []
    seen: set[str] = set()

    for photo in incoming:
        sid = photo.storage_id
        if not sid or sid in seen or sid in explicit_set:
            continue
        seen.add(sid)
        if photo.is_existing:
            if sid in previous_by_id:
                existing_segment.append(sid)
            else:
                unknown_existing.append(sid)
        else:
            new_segment.append(photo)

    retained = set(existing_segment) | {p.storage_id for p in new_segment}
    implicit = [p.storage_id for p in previous if p.storage_id not in retained and p.storage_id not in explicit_set]
    implicit = _unique(implicit)

    final_order = existing_segment + [p.storage_id for p in new_segment]

    to_insert: list[PhotoInsert] = []
    order_updates: list[PhotoOrderUpdate] = []
    new_by_id = {p.storage_id: p for p in new_segment}

    for index, sid in enumerate(final_order):
        is_cover = index == 0
        current = previous_by_id.get(sid)
        if current is None:
            to_insert.append(
                PhotoInsert(storage_id=sid, url=new_by_id[sid].url, order_index=index, is_cover=is_cover)
            )
        elif current.order_index != index or current.is_cover != is_cover:
            order_updates.append(PhotoOrderUpdate(storage_id=sid, order_index=index, is_cover=is_cover))

    return PhotoDiff(
        to_insert=to_insert,
        to_delete=explicit + implicit,
        implicit_deletes=implicit,
        final_order=final_order,
        order_updates=order_updates,
        unknown_existing=unknown_existing,
    )
