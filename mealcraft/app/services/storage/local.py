from pathlib import Path

from mealcraft.app.services.storage.base import StorageProvider, image_filename


class LocalStorageProvider(StorageProvider):
    def __init__(self, media_root: Path, prefix: str = "recipe-images"):
        self.media_root = media_root
        self.prefix = prefix
        (self.media_root / self.prefix).mkdir(parents=True, exist_ok=True)

    def save_image(self, recipe_id: int, data: bytes, content_type: str) -> str:
        filename = image_filename(recipe_id, content_type)
        destination = self.media_root / self.prefix / filename
        destination.write_bytes(data)
        return f"/media/{self.prefix}/{filename}"
