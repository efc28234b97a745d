import pytest
from sqlalchemy import func, select

from app.models.address import Address
from app.models.arsa_details import ArsaDetails
from app.models.image import Image
from app.models.konut_details import KonutDetails
from app.models.listing import Listing
from app.models.vasita_details import VasitaDetails
from app.schemas.listing import ListingWriteIn
from app.services import listing_update
from app.services.listing_update import update_listing

from tests.fakes import blob_url, fail_first_image_rewrite
from tests.fixtures_seed import konut_payload


async def _photo_rows(db, listing_id):
    rows = (await db.execute(
        select(Image.cloudinary_id, Image.order_index, Image.is_cover)
        .where(Image.listing_id == listing_id)
        .order_by(Image.order_index)
    )).all()
    return [tuple(r) for r in rows]


@pytest.mark.asyncio
async def test_update_core_fields_and_details(client, db_session, make_listing):
    listing = await make_listing()
    body = konut_payload(listing, title="Yenilenmis Daire", price=3_100_000, room_count="4+1", floor="3")

    r = await client.put("/v1/listings/update", json=body)
    assert r.status_code == 200
    assert r.json()["success"] is True
    assert r.json()["id"] == listing["id"]

    row = (await db_session.execute(
        select(Listing.title, Listing.price).where(Listing.id == listing["id"])
    )).one()
    assert tuple(row) == ("Yenilenmis Daire", 3_100_000)

    detail = (await db_session.execute(
        select(KonutDetails.room_count, KonutDetails.floor).where(KonutDetails.listing_id == listing["id"])
    )).one()
    assert tuple(detail) == ("4+1", 3)


@pytest.mark.asyncio
async def test_missing_room_count_rejected_before_any_write(client, db_session, make_listing, monkeypatch):
    listing = await make_listing()
    calls = []

    async def _spy(*args, **kwargs):
        calls.append(args)

    monkeypatch.setattr(listing_update, "write_details", _spy)
    body = konut_payload(listing, title="Degismemeli", room_count="")

    r = await client.put("/v1/listings/update", json=body)

    assert r.status_code == 400
    assert r.json() == {"error": "Oda sayısı seçilmeden ilan güncellenemez."}
    assert calls == []
    title = (await db_session.execute(select(Listing.title).where(Listing.id == listing["id"]))).scalar_one()
    assert title == listing["title"]


@pytest.mark.asyncio
async def test_vehicle_without_fuel_type_never_reaches_detail_table(db_session, fake_store, make_listing, monkeypatch):
    listing = await make_listing(title="Fiat Egea", property_type="vasita", photos=1)
    calls = []

    async def _spy(*args, **kwargs):
        calls.append(args)

    monkeypatch.setattr(listing_update, "write_details", _spy)
    payload = ListingWriteIn(
        id=listing["id"],
        title="Fiat Egea",
        description="Temiz",
        price=650_000,
        property_type="vasita",
        vasita_type="otomobil",
        brand="Fiat",
        photos=[{"id": listing["photo_ids"][0], "isExisting": True}],
        photosToDelete=[listing["photo_ids"][0]],
    )

    outcome = await update_listing(db=db_session, store=fake_store, payload=payload)

    assert not outcome.ok
    assert outcome.error_kind == "validation"
    assert outcome.error_message == "Yakıt tipi seçilmeden vasıta ilanı güncellenemez."
    assert calls == []
    # nothing downstream ran either
    assert fake_store.calls == []
    fuel = (await db_session.execute(
        select(VasitaDetails.fuel_type).where(VasitaDetails.listing_id == listing["id"])
    )).scalar_one()
    assert fuel == "benzin"


@pytest.mark.asyncio
async def test_arsa_without_kaks(client, db_session, make_listing):
    listing = await make_listing(title="Tarla", property_type="arsa", photos=0)
    body = {
        "id": listing["id"],
        "title": "Tarla",
        "description": "Yola cepheli",
        "price": 900_000,
        "property_type": "arsa",
        "arsa_type": "tarla",
        "sqm": 500,
    }

    r = await client.put("/v1/listings/update", json=body)
    assert r.status_code == 200

    detail = (await db_session.execute(
        select(ArsaDetails.arsa_type, ArsaDetails.sqm, ArsaDetails.kaks).where(ArsaDetails.listing_id == listing["id"])
    )).one()
    assert tuple(detail) == ("tarla", 500, None)


@pytest.mark.asyncio
async def test_missing_fields_and_bad_price(client, make_listing):
    listing = await make_listing()

    r = await client.put("/v1/listings/update", json={"id": listing["id"], "title": "x"})
    assert r.status_code == 400
    assert r.json() == {"error": "Missing required fields"}

    r = await client.put("/v1/listings/update", json=konut_payload(listing, price=-5))
    assert r.status_code == 400
    assert r.json() == {"error": "Geçerli bir fiyat girilmelidir"}


@pytest.mark.asyncio
async def test_unknown_listing_is_404(client, make_listing):
    listing = await make_listing()
    body = konut_payload(listing, id="00000000-0000-0000-0000-000000000000")

    r = await client.put("/v1/listings/update", json=body)
    assert r.status_code == 404
    assert r.json() == {"error": "Listing not found"}


@pytest.mark.asyncio
async def test_reorder_delete_and_insert(client, db_session, fake_store, make_listing):
    listing = await make_listing(photos=3)
    a, b, c = listing["photo_ids"]
    new_id = f"{listing['folder']}/image_3"
    fake_store.put(new_id)

    body = konut_payload(listing, photos=[
        {"id": c, "url": blob_url(c), "isExisting": True},
        {"id": new_id, "url": blob_url(new_id), "isExisting": False},
        {"id": a, "url": blob_url(a), "isExisting": True},
    ], photosToDelete=[b])

    r = await client.put("/v1/listings/update", json=body)
    assert r.status_code == 200

    assert await _photo_rows(db_session, listing["id"]) == [(c, 0, True), (a, 1, False), (new_id, 2, False)]
    assert b not in fake_store.blobs
    assert ("destroy", b) in fake_store.calls


@pytest.mark.asyncio
async def test_omitted_photo_is_deleted(client, db_session, fake_store, make_listing):
    listing = await make_listing(photos=2)
    x, y = listing["photo_ids"]

    body = konut_payload(listing, photos=[{"id": x, "url": blob_url(x), "isExisting": True}])
    r = await client.put("/v1/listings/update", json=body)
    assert r.status_code == 200

    assert await _photo_rows(db_session, listing["id"]) == [(x, 0, True)]
    assert y not in fake_store.blobs


@pytest.mark.asyncio
async def test_no_photos_in_payload_leaves_photos_alone(client, db_session, make_listing):
    listing = await make_listing(photos=2)
    before = await _photo_rows(db_session, listing["id"])

    r = await client.put("/v1/listings/update", json=konut_payload(listing, photos=[]))
    assert r.status_code == 200
    assert await _photo_rows(db_session, listing["id"]) == before


@pytest.mark.asyncio
async def test_storage_failure_does_not_fail_update(client, db_session, fake_store, make_listing):
    listing = await make_listing(photos=2)
    a, b = listing["photo_ids"]
    fake_store.fail_destroy.add(b)
    fake_store.fail_admin_delete.add(b)

    body = konut_payload(listing, photos=[{"id": a, "url": blob_url(a), "isExisting": True}], photosToDelete=[b])
    r = await client.put("/v1/listings/update", json=body)

    assert r.status_code == 200
    steps = {s["step"]: s["status"] for s in r.json()["steps"]}
    assert steps["explicit_deletes"] == "soft_fail"
    # the row is gone even though the blob survived
    assert await _photo_rows(db_session, listing["id"]) == [(a, 0, True)]
    assert b in fake_store.blobs


@pytest.mark.asyncio
async def test_folder_rename_rewrites_payload_ids(client, db_session, fake_store, make_listing):
    listing = await make_listing(title="Eski Baslik", photos=2)
    a, b = listing["photo_ids"]
    new_folder = "ceyhun-emlak/konut/yeni-baslik"

    body = konut_payload(
        listing,
        title="Yeni Başlık",
        folderRename={"oldPath": listing["folder"]},
        photos=[
            {"id": b, "url": blob_url(b), "isExisting": True},
            {"id": a, "url": blob_url(a), "isExisting": True},
        ],
    )
    r = await client.put("/v1/listings/update", json=body)
    assert r.status_code == 200

    assert fake_store.calls_named("rename_folder") == [("rename_folder", listing["folder"], new_folder)]
    # photos kept under their new ids instead of being deleted as unknown
    assert await _photo_rows(db_session, listing["id"]) == [
        (f"{new_folder}/image_1", 0, True),
        (f"{new_folder}/image_0", 1, False),
    ]
    assert fake_store.calls_named("destroy") == []


@pytest.mark.asyncio
async def test_failed_rename_still_updates(client, db_session, fake_store, make_listing):
    listing = await make_listing(title="Eski Baslik", photos=1)
    fake_store.fail_rename = True

    body = konut_payload(
        listing,
        title="Yeni Baslik",
        folderRename={"oldPath": listing["folder"], "newPath": "ceyhun-emlak/konut/yeni-baslik"},
    )
    r = await client.put("/v1/listings/update", json=body)

    assert r.status_code == 200
    steps = {s["step"]: s["status"] for s in r.json()["steps"]}
    assert steps["folder_rename"] == "soft_fail"
    assert await _photo_rows(db_session, listing["id"]) == [(listing["photo_ids"][0], 0, True)]


@pytest.mark.asyncio
async def test_foreign_photo_is_not_deleted(client, db_session, fake_store, make_listing):
    mine = await make_listing(title="Benim Ilanim", photos=1)
    other = await make_listing(title="Baska Ilan", photos=1)
    foreign = other["photo_ids"][0]

    body = konut_payload(mine, photosToDelete=[foreign])
    r = await client.put("/v1/listings/update", json=body)

    assert r.status_code == 200
    assert foreign in fake_store.blobs
    assert await _photo_rows(db_session, other["id"]) == [(foreign, 0, True)]


@pytest.mark.asyncio
async def test_address_upsert_with_defaults(client, db_session, make_listing):
    listing = await make_listing(photos=0)

    body = konut_payload(listing, address={"neighborhood": "Karsiyaka", "full_address": "No: 5"})
    r = await client.put("/v1/listings/update", json=body)
    assert r.status_code == 200

    rows = (await db_session.execute(
        select(Address.province, Address.district, Address.neighborhood).where(Address.listing_id == listing["id"])
    )).all()
    assert [tuple(r) for r in rows] == [("Tokat", "Merkez", "Karsiyaka")]


@pytest.mark.asyncio
async def test_category_change_replaces_detail_row(client, db_session, make_listing):
    listing = await make_listing(photos=0)
    body = {
        "id": listing["id"],
        "title": listing["title"],
        "description": "Artik arsa",
        "price": 1_000_000,
        "property_type": "arsa",
        "arsa_type": "imarli",
        "sqm": "750",
        "kaks": "1,5",
    }

    r = await client.put("/v1/listings/update", json=body)
    assert r.status_code == 200

    konut = (await db_session.execute(
        select(func.count()).select_from(KonutDetails).where(KonutDetails.listing_id == listing["id"])
    )).scalar_one()
    assert konut == 0
    kaks = (await db_session.execute(
        select(ArsaDetails.kaks).where(ArsaDetails.listing_id == listing["id"])
    )).scalar_one()
    assert kaks == 1.5


@pytest.mark.asyncio
async def test_vehicle_status_forced_to_sale(client, db_session, make_listing):
    listing = await make_listing(title="Fiat Egea", property_type="vasita", photos=0)
    body = {
        "id": listing["id"],
        "title": "Fiat Egea",
        "description": "Temiz",
        "price": 650_000,
        "property_type": "vasita",
        "listing_status": "kiralik",
        "vasita_type": "otomobil",
        "fuel_type": "dizel",
    }

    r = await client.put("/v1/listings/update", json=body)
    assert r.status_code == 200

    status = (await db_session.execute(
        select(Listing.listing_status).where(Listing.id == listing["id"])
    )).scalar_one()
    assert status == "satilik"


@pytest.mark.asyncio
async def test_rename_without_resource_list_keeps_photos(client, db_session, fake_store, make_listing):
    listing = await make_listing(title="Eski Baslik", photos=2)
    new_folder = "ceyhun-emlak/konut/yeni-baslik"
    fake_store.rename_unlisted = True

    body = konut_payload(listing, title="Yeni Baslik", folderRename={"oldPath": listing["folder"]})
    r = await client.put("/v1/listings/update", json=body)

    assert r.status_code == 200
    assert await _photo_rows(db_session, listing["id"]) == [
        (f"{new_folder}/image_0", 0, True),
        (f"{new_folder}/image_1", 1, False),
    ]
    assert fake_store.calls_named("destroy") == []
    assert f"{new_folder}/image_0" in fake_store.blobs


@pytest.mark.asyncio
async def test_failed_row_rewrite_leaves_photo_in_place(client, db_session, fake_store, make_listing, monkeypatch):
    listing = await make_listing(title="Eski Baslik", photos=2)
    a = listing["photo_ids"][0]
    new_folder = "ceyhun-emlak/konut/yeni-baslik"
    fail_first_image_rewrite(monkeypatch, db_session)

    body = konut_payload(listing, title="Yeni Baslik", folderRename={"oldPath": listing["folder"]})
    r = await client.put("/v1/listings/update", json=body)

    assert r.status_code == 200
    steps = {s["step"]: s["status"] for s in r.json()["steps"]}
    assert steps["folder_rename"] == "soft_fail"
    # the row that missed the rewrite keeps its old id instead of being deleted
    assert await _photo_rows(db_session, listing["id"]) == [(a, 0, True), (f"{new_folder}/image_1", 1, False)]
    assert fake_store.calls_named("destroy") == []


@pytest.mark.asyncio
async def test_ground_floor_apartment_updates(client, db_session, make_listing):
    listing = await make_listing(photos=0)

    r = await client.put("/v1/listings/update", json=konut_payload(listing, floor="zemin"))
    assert r.status_code == 200

    floor = (await db_session.execute(
        select(KonutDetails.floor).where(KonutDetails.listing_id == listing["id"])
    )).scalar_one()
    assert floor == 0
