from typing import Optional

from mealcraft.app.services.storage.base import StorageProvider, image_filename
from mealcraft.app.storage import object_store


class S3StorageProvider(StorageProvider):
    def __init__(self, bucket: str, prefix: str = "recipe-images", public_base_url: Optional[str] = None):
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.public_base_url = public_base_url

    def save_image(self, recipe_id: int, data: bytes, content_type: str) -> str:
        key = f"{self.prefix}/{image_filename(recipe_id, content_type)}"
        uri = object_store.put_bytes(self.bucket, key, content_type, data)
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        return uri
