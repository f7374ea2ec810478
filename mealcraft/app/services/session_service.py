import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from mealcraft.app.db.models import MealType
from mealcraft.app.schemas.auth import CurrentUser
from mealcraft.app.schemas.recipe import RecipeDraft
from mealcraft.app.services import ingredient_catalog
from mealcraft.app.services.errors import PersistError
from mealcraft.app.services.generation_service import GenerationSession, RecipeGenerator
from mealcraft.app.services.persistence_service import PersistenceGateway

logger = logging.getLogger(__name__)


class SessionRegistry:
    """
    In-process store of generation sessions, keyed by session id.

    Sessions untouched for ``idle_ttl_seconds`` are evicted on the next
    create; a session with an attempt in flight is never evicted.
    """

    def __init__(self, idle_ttl_seconds: int = 3600, clock=time.monotonic):
        self.idle_ttl_seconds = idle_ttl_seconds
        self._clock = clock
        self._sessions: Dict[str, GenerationSession] = {}
        self._last_seen: Dict[str, float] = {}

    def create(self) -> GenerationSession:
        now = self._clock()
        self.evict_idle(now)
        session = GenerationSession()
        self._sessions[session.session_id] = session
        self._last_seen[session.session_id] = now
        return session

    def get(self, session_id: str) -> Optional[GenerationSession]:
        session = self._sessions.get(session_id)
        if session is not None:
            self._last_seen[session_id] = self._clock()
        return session

    def remove(self, session_id: str) -> bool:
        self._last_seen.pop(session_id, None)
        return self._sessions.pop(session_id, None) is not None

    def evict_idle(self, now: Optional[float] = None) -> int:
        if self.idle_ttl_seconds <= 0:
            return 0
        now = self._clock() if now is None else now
        idle = [
            session_id
            for session_id, seen_at in self._last_seen.items()
            if now - seen_at > self.idle_ttl_seconds and not self._sessions[session_id].generating
        ]
        for session_id in idle:
            self.remove(session_id)
        if idle:
            logger.info("Evicted %d idle generation sessions", len(idle))
        return len(idle)

    def __len__(self) -> int:
        return len(self._sessions)


@dataclass
class SessionOutcome:
    draft: RecipeDraft
    recipe_id: Optional[int] = None
    image_url: Optional[str] = None
    persist_error: Optional[PersistError] = None
    warnings: List[PersistError] = field(default_factory=list)

    @property
    def saved(self) -> bool:
        return self.recipe_id is not None


async def generate_and_save(
    session: GenerationSession,
    generator: RecipeGenerator,
    gateway: PersistenceGateway,
    catalog_path: Path,
    ingredient_ids: Sequence[int],
    meal_type: MealType,
    token: Optional[CurrentUser] = None,
    regenerate: bool = False,
) -> SessionOutcome:
    """
    Generate a recipe for the session and, only if every stage succeeded,
    save it. Raises GenerationError when generation fails; a failed save is
    reported on the outcome instead.
    """
    selection = ingredient_catalog.normalize_selection(ingredient_ids)
    names = ingredient_catalog.resolve_names(catalog_path, selection)

    # the session stays held until this attempt's save is recorded
    with generator.attempt(session):
        run = generator.rerun if regenerate else generator.run
        draft = (await run(session, selection, meal_type, names)).unwrap()

        result = await gateway.persist(draft, names, meal_type, token)
        if not result.saved:
            logger.warning("Session %s: recipe generated but not saved (%s)", session.session_id, result.error.step.value)
            session.mark_persist_failed()
            return SessionOutcome(draft=draft, persist_error=result.error)

        session.mark_saved(result.recipe.id)
    return SessionOutcome(
        draft=draft,
        recipe_id=result.recipe.id,
        image_url=result.recipe.image_url,
        warnings=result.warnings,
    )
