import pytest

from app.services.uploads import FolderCache, folder_cache, resolve_upload_folder, upload_listing_photo


@pytest.mark.asyncio
async def test_upload_uses_title_folder_and_index(fake_store):
    cache = FolderCache()
    stored = await upload_listing_photo(
        store=fake_store, cache=cache, data=b"jpg", property_type="konut",
        listing_id="L1", index=3, title="Deniz Manzaralı Daire",
    )
    assert stored.id == "ceyhun-emlak/konut/deniz-manzarali-daire/image_3"


@pytest.mark.asyncio
async def test_session_photos_share_one_folder(fake_store):
    cache = FolderCache()
    first = await upload_listing_photo(
        store=fake_store, cache=cache, data=b"1", property_type="konut", listing_id="L1", index=0, title="Daire",
    )
    # the folder now has a blob, but the cached choice wins
    second = await upload_listing_photo(
        store=fake_store, cache=cache, data=b"2", property_type="konut", listing_id="L1", index=1, title="Daire",
    )
    assert first.id.rsplit("/", 1)[0] == second.id.rsplit("/", 1)[0] == "ceyhun-emlak/konut/daire"


@pytest.mark.asyncio
async def test_taken_folder_gets_numbered_suffix(fake_store):
    fake_store.busy_folders |= {"ceyhun-emlak/arsa/tarla", "ceyhun-emlak/arsa/tarla-1"}
    folder = await resolve_upload_folder(
        store=fake_store, cache=FolderCache(), property_type="arsa", listing_id="L2", title="Tarla",
    )
    assert folder == "ceyhun-emlak/arsa/tarla-2"


@pytest.mark.asyncio
async def test_all_suffixes_taken_falls_back_to_timestamp(fake_store):
    base = "ceyhun-emlak/arsa/tarla"
    fake_store.busy_folders |= {base} | {f"{base}-{n}" for n in range(1, 10)}
    folder = await resolve_upload_folder(
        store=fake_store, cache=FolderCache(), property_type="arsa", listing_id="L2", title="Tarla",
    )
    suffix = folder[len(base) + 1:]
    assert folder.startswith(base + "-")
    assert suffix.isdigit() and len(suffix) >= 13


@pytest.mark.asyncio
async def test_lookup_error_falls_back_to_timestamp(fake_store):
    fake_store.fail_folder_lookup = True
    folder = await resolve_upload_folder(
        store=fake_store, cache=FolderCache(), property_type="konut", listing_id="L3", title=None,
    )
    assert folder.startswith("ceyhun-emlak/konut/L3-")


@pytest.mark.asyncio
async def test_existing_folder_wins(fake_store):
    cache = FolderCache()
    folder = await resolve_upload_folder(
        store=fake_store, cache=cache, property_type="konut", listing_id="L4",
        title="Baska", existing_folder="ceyhun-emlak/konut/mevcut",
    )
    assert folder == "ceyhun-emlak/konut/mevcut"
    assert cache.get("konut", "L4") == "ceyhun-emlak/konut/mevcut"
    assert fake_store.calls_named("folder_in_use") == []


@pytest.mark.asyncio
async def test_upload_endpoint(client, fake_store):
    r = await client.post(
        "/v1/uploads",
        data={"propertyType": "vasita", "listingId": "L5", "index": "0", "title": "Fiat Egea"},
        files={"file": ("a.jpg", b"\xff\xd8data", "image/jpeg")},
    )
    assert r.status_code == 200
    body = r.json()
    assert body["id"] == "ceyhun-emlak/vasita/fiat-egea/image_0"
    assert body["folder"] == "ceyhun-emlak/vasita/fiat-egea"


@pytest.mark.asyncio
async def test_upload_endpoint_rejects_unknown_category(client):
    r = await client.post(
        "/v1/uploads",
        data={"propertyType": "tekne", "listingId": "L5", "index": "0"},
        files={"file": ("a.jpg", b"data", "image/jpeg")},
    )
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid property type"}


@pytest.mark.asyncio
async def test_upload_failure_is_500(client, fake_store):
    fake_store.fail_upload = True
    r = await client.post(
        "/v1/uploads",
        data={"propertyType": "konut", "listingId": "L6", "index": "0"},
        files={"file": ("a.jpg", b"data", "image/jpeg")},
    )
    assert r.status_code == 500
    assert r.json()["error"] == "Upload failed"


def test_folder_cache_drops_least_recently_used():
    cache = FolderCache(max_size=2)
    cache.put("konut", "L1", "f1")
    cache.put("konut", "L2", "f2")
    assert cache.get("konut", "L1") == "f1"

    cache.put("konut", "L3", "f3")

    assert len(cache) == 2
    assert cache.get("konut", "L2") is None
    assert cache.get("konut", "L1") == "f1"


def test_folder_cache_forget_listing():
    cache = FolderCache()
    cache.put("konut", "L1", "f1")
    cache.put("arsa", "L1", "f2")
    cache.put("konut", "L2", "f3")

    cache.forget("L1")

    assert len(cache) == 1
    assert cache.get("konut", "L2") == "f3"


@pytest.mark.asyncio
async def test_created_listing_releases_its_upload_session(client):
    listing_id = "0f6c2a7e-8d4b-4c51-9a3e-2b7d1e5f9c80"
    r = await client.post(
        "/v1/uploads",
        data={"propertyType": "arsa", "listingId": listing_id, "index": "0", "title": "Tarla"},
        files={"file": ("a.jpg", b"\xff\xd8data", "image/jpeg")},
    )
    assert r.status_code == 200
    assert folder_cache.get("arsa", listing_id) == "ceyhun-emlak/arsa/tarla"

    body = {
        "id": listing_id,
        "title": "Tarla",
        "description": "Yola cepheli",
        "price": 900_000,
        "property_type": "arsa",
        "arsa_type": "tarla",
        "sqm": 500,
        "photos": [{"id": r.json()["id"], "url": r.json()["url"], "isExisting": False}],
    }
    r = await client.post("/v1/listings", json=body)
    assert r.status_code == 201
    assert folder_cache.get("arsa", listing_id) is None
