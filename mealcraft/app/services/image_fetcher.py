import logging
from typing import Optional, Tuple

import httpx

from mealcraft.app.core.config import get_settings

logger = logging.getLogger(__name__)


def detect_content_type(image_bytes: bytes, declared: Optional[str] = None) -> str:
    """Detect image content type from magic bytes."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes.startswith(b"GIF87a") or image_bytes.startswith(b"GIF89a"):
        return "image/gif"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if declared and declared.startswith("image/"):
        return declared.split(";")[0].strip()
    return "image/png"


async def fetch_image(url: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> Tuple[bytes, str]:
    """
    Download a generated image from its transient URL.

    Raises:
        httpx.HTTPError: on transport or HTTP status failures
        ValueError: if the body is empty or larger than RECIPE_IMAGE_MAX_BYTES
    """
    settings = get_settings()
    timeout = httpx.Timeout(settings.image_fetch_timeout_seconds, connect=10.0)
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True, transport=transport) as client:
        resp = await client.get(url)
    resp.raise_for_status()
    data = resp.content
    if not data:
        raise ValueError("Generated image is empty")
    if len(data) > settings.recipe_image_max_bytes:
        raise ValueError(f"Generated image exceeds {settings.recipe_image_max_bytes} bytes")
    content_type = detect_content_type(data, resp.headers.get("content-type"))
    logger.debug("Fetched %d bytes (%s) from generated image url", len(data), content_type)
    return data, content_type
