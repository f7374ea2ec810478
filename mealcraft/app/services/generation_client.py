import json
import logging
import re
from typing import Any, Dict, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from mealcraft.app.core.config import Settings, get_settings
from mealcraft.app.db.models import MealType
from mealcraft.app.schemas.recipe import RecipeBody
from mealcraft.app.services.generation_cache import GenerationCache, inputs_key

logger = logging.getLogger(__name__)


def _strip_code_fence(text: str) -> str:
    txt = text.strip()
    if txt.startswith("```"):
        txt = re.sub(r"^```[a-zA-Z0-9_-]*\s*", "", txt, count=1)
        txt = re.sub(r"\s*```$", "", txt, count=1).strip()
    return txt


def _meal_phrase(meal_type: MealType) -> str:
    if meal_type == MealType.ANY:
        return "recipe"
    return f"{meal_type.value} recipe"


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _coerce_recipe_body(raw: Any) -> Optional[RecipeBody]:
    """
    Accept the shapes models tend to return and coerce into RecipeBody.
    Also accepts {"recipe": {...}}, "instructions"/"directions" for steps and
    plain strings for ingredients.
    """
    data = raw
    if isinstance(raw, str):
        try:
            data = json.loads(_strip_code_fence(raw))
        except json.JSONDecodeError:
            logger.warning("Recipe body is not valid JSON")
            return None
    if isinstance(data, dict) and isinstance(data.get("recipe"), dict):
        data = data["recipe"]
    if not isinstance(data, dict):
        return None

    def _list(name: str) -> List[Any]:
        value = data.get(name)
        return value if isinstance(value, list) else []

    ingredients = []
    for ing in _list("ingredients"):
        if isinstance(ing, str) and ing.strip():
            ingredients.append({"name": ing.strip()})
        elif isinstance(ing, dict):
            name = ing.get("name") or ing.get("label")
            amount = ing.get("amount") or ing.get("quantity")
            if isinstance(name, str) and name.strip():
                ingredients.append({"name": name.strip(), "amount": str(amount) if amount is not None else None})

    steps = []
    for st in _list("steps") or _list("instructions") or _list("directions"):
        if isinstance(st, dict):
            st = st.get("text") or st.get("description") or ""
        if isinstance(st, str) and st.strip():
            steps.append(st.strip())

    try:
        return RecipeBody.model_validate(
            {
                "ingredients": ingredients,
                "steps": steps,
                "prep_time_minutes": _as_int(data.get("prep_time_minutes") or data.get("prepTime")),
                "cook_time_minutes": _as_int(data.get("cook_time_minutes") or data.get("cookTime")),
                "servings": _as_int(data.get("servings")),
                "tips": [t for t in _list("tips") if isinstance(t, str)],
            }
        )
    except ValidationError as exc:
        logger.warning("Recipe body failed validation: %s", exc)
        return None


class GenerationClient:
    """
    Client for an OpenAI-compatible content-generation service.

    Every request_* method returns an empty value (None or "") when the
    service cannot produce a result: transport errors, HTTP errors, proxy
    error payloads and unparseable content all look the same to callers.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        cache: Optional[GenerationCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self.cache = cache if cache is not None else GenerationCache(self.settings.generation_cache_ttl_seconds)
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.settings.llm_api_key:
            headers["Authorization"] = f"Bearer {self.settings.llm_api_key}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        seconds = self.settings.llm_timeout_seconds
        timeout = httpx.Timeout(seconds, read=seconds, connect=10.0)
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    async def _post(self, path: str, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if not self.settings.llm_base_url:
            logger.error("LLM_BASE_URL is not configured")
            return None
        url = f"{self.settings.llm_base_url.rstrip('/')}{path}"
        try:
            async with self._client() as client:
                resp = await client.post(url, json=payload, headers=self._headers())
        except httpx.HTTPError as exc:
            logger.warning("Generation request to %s failed: %s", path, exc)
            return None
        if resp.status_code >= 400:
            logger.warning("Generation request to %s failed with status %s", path, resp.status_code)
            return None
        try:
            data = resp.json()
        except ValueError:
            logger.warning("Generation service returned non-JSON response for %s", path)
            return None
        if not isinstance(data, dict):
            logger.warning("Generation service returned an unexpected payload for %s", path)
            return None
        if "error" in data:
            error_info = data["error"] if isinstance(data["error"], dict) else {"message": str(data["error"])}
            logger.warning(
                "Generation service returned error: type=%s, message=%s",
                error_info.get("type", "unknown_error"),
                str(error_info.get("message", "Unknown error"))[:500],
            )
            return None
        return data

    async def _chat(self, system_prompt: str, user_prompt: str, max_tokens: int, json_mode: bool = False) -> str:
        payload: Dict[str, Any] = {
            "model": self.settings.llm_text_model_name,
            "temperature": self.settings.llm_temperature,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": max_tokens,
            "stream": False,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}
        data = await self._post("/v1/chat/completions", payload)
        if not data:
            return ""
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return ""
        message = choices[0].get("message")
        if not isinstance(message, dict) or not isinstance(message.get("content"), str):
            return ""
        return message["content"].strip()

    async def request_title(self, ingredients: Sequence[str], meal_type: MealType) -> str:
        key = inputs_key(ingredients, meal_type)
        cached = self.cache.get("title", key)
        if cached:
            return cached
        content = await self._chat(
            "You name recipes. Reply with the recipe title only, no quotes and no extra text.",
            f"Create a title for a {_meal_phrase(meal_type)} using these ingredients: {', '.join(ingredients)}",
            max_tokens=60,
        )
        title = content.strip().strip('"').strip()
        self.cache.set("title", key, title)
        self.cache.remember_title(ingredients, meal_type, title)
        return title

    async def request_image(self, title: str) -> str:
        cached = self.cache.get("image", (title,))
        if cached:
            return cached
        data = await self._post(
            "/v1/images/generations",
            {
                "model": self.settings.llm_image_model_name,
                "prompt": f"A professional food photograph of {title}",
                "n": 1,
                "size": self.settings.llm_image_size,
            },
        )
        items = (data or {}).get("data")
        image_url = None
        if isinstance(items, list) and items and isinstance(items[0], dict):
            image_url = items[0].get("url")
        image_url = image_url if isinstance(image_url, str) else ""
        self.cache.set("image", (title,), image_url)
        return image_url

    async def request_description(self, title: str, ingredients: Sequence[str], meal_type: MealType) -> str:
        key = (title, *inputs_key(ingredients, meal_type))
        cached = self.cache.get("description", key)
        if cached:
            return cached
        description = await self._chat(
            "You write short, appetizing recipe descriptions of one or two sentences.",
            f"Describe the {_meal_phrase(meal_type)} '{title}' made with: {', '.join(ingredients)}",
            max_tokens=150,
        )
        self.cache.set("description", key, description)
        return description

    async def request_body(self, title: str, ingredients: Sequence[str], meal_type: MealType) -> Optional[RecipeBody]:
        key = (title, *inputs_key(ingredients, meal_type))
        cached = self.cache.get("body", key)
        if cached:
            return cached
        content = await self._chat(
            (
                "Write the full recipe. Return ONLY valid JSON matching this schema:\n"
                '{"ingredients": [{"name": string, "amount": string|null}], "steps": [string], '
                '"prep_time_minutes": int|null, "cook_time_minutes": int|null, "servings": int|null, "tips": [string]}\n'
                "Use the given ingredients; common pantry staples may be added."
            ),
            f"Recipe: {title}\nMeal: {_meal_phrase(meal_type)}\nIngredients: {', '.join(ingredients)}",
            max_tokens=1100,
            json_mode=True,
        )
        body = _coerce_recipe_body(content) if content else None
        self.cache.set("body", key, body)
        return body

    async def flush_cache(self, ingredients: Sequence[str], meal_type: MealType) -> None:
        """Invalidate cached results for these inputs; there is no failure signal."""
        self.cache.flush(ingredients, meal_type)
        flush_url = self.settings.generation_cache_flush_url
        if not flush_url:
            return
        try:
            async with self._client() as client:
                await client.post(
                    flush_url,
                    json={"ingredients": list(ingredients), "meal_type": meal_type.value},
                    headers=self._headers(),
                )
        except httpx.HTTPError as exc:
            logger.warning("Remote cache flush failed: %s", exc)
