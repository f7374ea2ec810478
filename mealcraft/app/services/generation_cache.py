"""
Response cache for the generation service.

Stage results are cached per input so repeated requests for the same
ingredients and meal type are served without another model call. The
regeneration path flushes the entries for its inputs before rerunning, so a
regenerated recipe is never a stale hit.
"""
import logging
import time
from typing import Any, Dict, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, Tuple[Hashable, ...]]


def inputs_key(ingredients, meal_type) -> Tuple[Tuple[str, ...], str]:
    return tuple(ingredients), str(getattr(meal_type, "value", meal_type))


class GenerationCache:
    def __init__(self, ttl_seconds: int = 3600, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[CacheKey, Tuple[float, Any]] = {}
        # titles produced for a given (ingredients, meal_type) with the time they were seen,
        # so their image entries can be flushed too
        self._titles_by_inputs: Dict[Tuple[Tuple[str, ...], str], Dict[str, float]] = {}

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    def _expired(self, stored_at: float, now: float) -> bool:
        return now - stored_at > self.ttl_seconds

    def get(self, stage: str, key: Tuple[Hashable, ...]) -> Optional[Any]:
        if not self.enabled:
            return None
        entry = self._entries.get((stage, key))
        if entry is None:
            return None
        stored_at, value = entry
        if self._expired(stored_at, self._clock()):
            self._entries.pop((stage, key), None)
            return None
        return value

    def set(self, stage: str, key: Tuple[Hashable, ...], value: Any) -> None:
        if not self.enabled or not value:
            return
        now = self._clock()
        self.sweep(now)
        self._entries[(stage, key)] = (now, value)

    def sweep(self, now: Optional[float] = None) -> int:
        """Evict every expired entry and title; returns the number of entries evicted."""
        now = self._clock() if now is None else now
        expired = [k for k, (stored_at, _) in self._entries.items() if self._expired(stored_at, now)]
        for cache_key in expired:
            del self._entries[cache_key]
        for scope in list(self._titles_by_inputs):
            titles = self._titles_by_inputs[scope]
            for title in [t for t, seen_at in titles.items() if self._expired(seen_at, now)]:
                del titles[title]
            if not titles:
                del self._titles_by_inputs[scope]
        if expired:
            logger.debug("Evicted %d expired generation entries", len(expired))
        return len(expired)

    def remember_title(self, ingredients, meal_type, title: str) -> None:
        if not self.enabled or not title:
            return
        self._titles_by_inputs.setdefault(inputs_key(ingredients, meal_type), {})[title] = self._clock()

    def flush(self, ingredients, meal_type) -> int:
        """Drop every cached stage result derived from these inputs."""
        scope = inputs_key(ingredients, meal_type)
        titles = self._titles_by_inputs.pop(scope, {})
        doomed = []
        for cache_key in self._entries:
            stage, key = cache_key
            if stage == "image":
                if key and key[0] in titles:
                    doomed.append(cache_key)
            elif scope[0] in key and scope[1] in key:
                doomed.append(cache_key)
        for cache_key in doomed:
            del self._entries[cache_key]
        logger.debug("Flushed %d cached generation entries for %s", len(doomed), scope)
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()
        self._titles_by_inputs.clear()

    def __len__(self) -> int:
        return len(self._entries)
