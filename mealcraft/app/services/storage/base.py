from abc import ABC, abstractmethod

EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
}


def image_filename(recipe_id: int, content_type: str) -> str:
    return f"{recipe_id}.{EXTENSIONS.get(content_type, 'png')}"


class StorageProvider(ABC):
    @abstractmethod
    def save_image(self, recipe_id: int, data: bytes, content_type: str) -> str:  # pragma: no cover - interface
        """Store the image for ``recipe_id`` and return its durable reference."""
        raise NotImplementedError
