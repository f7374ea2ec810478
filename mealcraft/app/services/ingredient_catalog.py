import json
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, List

from mealcraft.app.services.errors import UnknownIngredientError

POPULAR_INGREDIENT_IDS = (1840, 10024, 2015, 1767, 186)


@lru_cache(maxsize=4)
def _load_catalog(base_path: Path) -> Dict[int, str]:
    path = base_path / "ingredients.json"
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        return {int(item["id"]): item["name"] for item in json.load(f)}


def normalize_selection(ingredient_ids: Iterable[int]) -> List[int]:
    """Deduplicate and sort ascending; order of selection does not matter."""
    selection = sorted(set(int(i) for i in ingredient_ids))
    if not selection:
        raise ValueError("At least one ingredient must be selected")
    return selection


def get_name(base_path: Path, ingredient_id: int) -> str:
    catalog = _load_catalog(base_path)
    if ingredient_id not in catalog:
        raise UnknownIngredientError([ingredient_id])
    return catalog[ingredient_id]


def resolve_names(base_path: Path, selection: Iterable[int]) -> List[str]:
    catalog = _load_catalog(base_path)
    ids = list(selection)
    unknown = [i for i in ids if i not in catalog]
    if unknown:
        raise UnknownIngredientError(unknown)
    return [catalog[i] for i in ids]


def flatten_names(names: Iterable[str]) -> str:
    return ",".join(names)


def list_popular(base_path: Path) -> List[Dict[str, object]]:
    catalog = _load_catalog(base_path)
    return [{"id": i, "name": catalog[i]} for i in POPULAR_INGREDIENT_IDS if i in catalog]
