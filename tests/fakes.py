from __future__ import annotations

from sqlalchemy.exc import OperationalError
from sqlalchemy.sql.dml import Update

from app.services.storage import FolderRenameResult, MediaStoreError, MovedResource, StoredMedia


def blob_url(storage_id: str) -> str:
    return f"https://res.example.test/{storage_id}.jpg"


class FakeMediaStore:
    """In-memory MediaStore. Records every call; failures are opt-in per test."""

    def __init__(self) -> None:
        self.blobs: dict[str, str] = {}
        self.calls: list[tuple] = []

        self.fail_destroy: set[str] = set()
        self.fail_admin_delete: set[str] = set()
        self.fail_rename = False
        # rename moves the blobs but cannot list them afterwards
        self.rename_unlisted = False
        self.fail_upload = False
        self.fail_copy_from: set[str] = set()
        self.fail_folder_delete = False
        self.fail_folder_lookup = False
        # folders reported as taken even without blobs
        self.busy_folders: set[str] = set()

    def put(self, storage_id: str) -> str:
        self.blobs[storage_id] = blob_url(storage_id)
        return self.blobs[storage_id]

    def calls_named(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]

    async def upload(self, *, data: bytes, folder: str, public_id: str) -> StoredMedia:
        self.calls.append(("upload", folder, public_id))
        if self.fail_upload:
            raise MediaStoreError("upload failed")
        sid = f"{folder}/{public_id}"
        return StoredMedia(id=sid, url=self.put(sid))

    async def upload_from_url(self, *, url: str, folder: str, public_id: str) -> StoredMedia:
        self.calls.append(("upload_from_url", url, folder, public_id))
        if url in self.fail_copy_from:
            raise MediaStoreError("copy failed")
        sid = f"{folder}/{public_id}"
        return StoredMedia(id=sid, url=self.put(sid))

    async def destroy(self, storage_id: str) -> bool:
        self.calls.append(("destroy", storage_id))
        if storage_id in self.fail_destroy:
            return False
        self.blobs.pop(storage_id, None)
        return True

    async def delete_admin(self, storage_id: str) -> bool:
        self.calls.append(("delete_admin", storage_id))
        if storage_id in self.fail_admin_delete:
            return False
        self.blobs.pop(storage_id, None)
        return True

    async def rename_folder(self, old_path: str, new_path: str) -> FolderRenameResult:
        self.calls.append(("rename_folder", old_path, new_path))
        if self.fail_rename:
            return FolderRenameResult(success=False, error_message="rename failed")
        moved = []
        for sid in sorted(self.blobs):
            if sid.startswith(old_path + "/"):
                new_id = new_path + sid[len(old_path):]
                del self.blobs[sid]
                moved.append(MovedResource(old_id=sid, new_id=new_id, new_url=self.put(new_id)))
        if self.rename_unlisted:
            return FolderRenameResult(success=True, error_message="search failed")
        return FolderRenameResult(success=True, moved=moved)

    async def delete_folder(self, path: str) -> bool:
        self.calls.append(("delete_folder", path))
        if self.fail_folder_delete:
            return False
        for sid in [s for s in self.blobs if s.startswith(path + "/")]:
            del self.blobs[sid]
        return True

    async def folder_in_use(self, path: str) -> bool:
        self.calls.append(("folder_in_use", path))
        if self.fail_folder_lookup:
            raise MediaStoreError("lookup failed")
        return path in self.busy_folders or any(s.startswith(path + "/") for s in self.blobs)

    async def list_resources(self, prefix: str) -> list[StoredMedia]:
        self.calls.append(("list_resources", prefix))
        return [StoredMedia(id=s, url=u) for s, u in sorted(self.blobs.items()) if s.startswith(prefix + "/")]


def fail_first_image_rewrite(monkeypatch, db) -> None:
    """Make the next UPDATE on images fail once, as a locked row would."""
    real_execute = db.execute
    armed = [True]

    async def _execute(stmt, *args, **kwargs):
        if armed[0] and isinstance(stmt, Update) and stmt.table.name == "images":
            armed[0] = False
            raise OperationalError("UPDATE images", {}, Exception("database is locked"))
        return await real_execute(stmt, *args, **kwargs)

    monkeypatch.setattr(db, "execute", _execute)
