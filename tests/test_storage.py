import httpx
import pytest

from mealcraft.app.services import image_fetcher
from mealcraft.app.services.storage.local import LocalStorageProvider
from mealcraft.app.services.storage.s3 import S3StorageProvider
from mealcraft.app.storage import object_store

from conftest import PNG_BYTES


def test_local_provider_writes_under_media(tmp_path):
    provider = LocalStorageProvider(tmp_path)
    ref = provider.save_image(42, b"\xff\xd8\xffjpeg", "image/jpeg")
    assert ref == "/media/recipe-images/42.jpg"
    assert (tmp_path / "recipe-images" / "42.jpg").read_bytes() == b"\xff\xd8\xffjpeg"


def test_s3_provider_keys_by_recipe_id(monkeypatch):
    uploads = []

    def fake_put(bucket, key, content_type, data):
        uploads.append((bucket, key, content_type, data))
        return object_store.uri_for(bucket, key)

    monkeypatch.setattr(object_store, "put_bytes", fake_put)

    ref = S3StorageProvider("recipes", "recipe-images").save_image(7, PNG_BYTES, "image/png")
    assert ref == "s3://recipes/recipe-images/7.png"
    assert uploads == [("recipes", "recipe-images/7.png", "image/png", PNG_BYTES)]

    public = S3StorageProvider("recipes", "recipe-images", "https://cdn.example.com").save_image(8, PNG_BYTES, "image/png")
    assert public == "https://cdn.example.com/recipe-images/8.png"


def test_detect_content_type():
    assert image_fetcher.detect_content_type(PNG_BYTES) == "image/png"
    assert image_fetcher.detect_content_type(b"\xff\xd8\xff\xe0") == "image/jpeg"
    assert image_fetcher.detect_content_type(b"????", "image/webp; charset=binary") == "image/webp"
    assert image_fetcher.detect_content_type(b"????") == "image/png"


@pytest.mark.asyncio
async def test_fetch_image_downloads_bytes():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=PNG_BYTES))
    data, content_type = await image_fetcher.fetch_image("https://img.test/tmp/1.png", transport=transport)
    assert data == PNG_BYTES
    assert content_type == "image/png"


@pytest.mark.asyncio
async def test_fetch_image_raises_on_expired_url():
    transport = httpx.MockTransport(lambda request: httpx.Response(403))
    with pytest.raises(httpx.HTTPStatusError):
        await image_fetcher.fetch_image("https://img.test/tmp/expired.png", transport=transport)
