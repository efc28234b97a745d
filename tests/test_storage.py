import cloudinary.api
import pytest

from app.services.storage import CloudinaryMediaStore


class PrefixMatchingApi:
    """Admin API double: `prefix` is a plain string match, as in Cloudinary."""

    def __init__(self, ids):
        self.ids = set(ids)
        self.prefixes = []

    def delete_resources_by_prefix(self, prefix, **kwargs):
        self.prefixes.append(prefix)
        self.ids = {i for i in self.ids if not i.startswith(prefix)}
        return {"deleted": {}}

    def delete_folder(self, path, **kwargs):
        return {"deleted": [path]}

    def resources(self, **kwargs):
        prefix = kwargs["prefix"]
        found = [{"public_id": i, "secure_url": f"https://cdn.test/{i}.jpg"} for i in sorted(self.ids) if i.startswith(prefix)]
        return {"resources": found[: kwargs.get("max_results", len(found))]}


@pytest.fixture
def api(monkeypatch):
    fake = PrefixMatchingApi([
        "ceyhun-emlak/konut/ev/image_0",
        "ceyhun-emlak/konut/ev-1/image_0",
        "ceyhun-emlak/konut/ev-2/image_0",
    ])
    monkeypatch.setattr(cloudinary.api, "delete_resources_by_prefix", fake.delete_resources_by_prefix)
    monkeypatch.setattr(cloudinary.api, "delete_folder", fake.delete_folder)
    monkeypatch.setattr(cloudinary.api, "resources", fake.resources)
    return fake


@pytest.fixture
def store():
    return CloudinaryMediaStore(cloud_name="demo", api_key="key", api_secret="secret")


@pytest.mark.asyncio
async def test_delete_folder_spares_suffixed_siblings(api, store):
    assert await store.delete_folder("ceyhun-emlak/konut/ev") is True

    assert api.prefixes == ["ceyhun-emlak/konut/ev/"]
    assert api.ids == {"ceyhun-emlak/konut/ev-1/image_0", "ceyhun-emlak/konut/ev-2/image_0"}


@pytest.mark.asyncio
async def test_folder_in_use_ignores_siblings(api, store):
    api.ids.discard("ceyhun-emlak/konut/ev/image_0")

    assert await store.folder_in_use("ceyhun-emlak/konut/ev") is False
    assert await store.folder_in_use("ceyhun-emlak/konut/ev-1") is True


@pytest.mark.asyncio
async def test_list_resources_stays_inside_folder(api, store):
    found = await store.list_resources("ceyhun-emlak/konut/ev")
    assert [m.id for m in found] == ["ceyhun-emlak/konut/ev/image_0"]
