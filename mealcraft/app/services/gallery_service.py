import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional


@lru_cache(maxsize=1)
def _load_gallery(base_path: Path) -> List[Dict[str, Any]]:
    path = base_path / "preview_gallery.json"
    if not path.exists():
        return []
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def list_preview_recipes(base_path: Path, public_base_url: Optional[str] = None) -> List[Dict[str, Any]]:
    """Example recipes shown to visitors before they generate their own."""
    prefix = (public_base_url or "/media").rstrip("/")
    items = []
    for entry in _load_gallery(base_path):
        src = entry.get("image_src") or ""
        if src and not src.startswith(("http://", "https://")):
            src = f"{prefix}/{src.lstrip('/')}"
        items.append(
            {
                "title": entry.get("title") or "Untitled",
                "description": entry.get("description") or "",
                "image_src": src,
            }
        )
    return items
