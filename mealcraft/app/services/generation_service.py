"""
Recipe generation pipeline.

A generation attempt runs four stages strictly in order, each feeding the
next: title -> image -> description -> body. The image prompt depends on the
title only. The first stage that comes back empty ends the attempt; nothing
is retried and no partial draft is kept. Persisting a finished draft is a
separate step owned by the caller (see persistence_service).
"""
import enum
import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Iterator, List, Optional, Protocol, Sequence, TypeVar

from mealcraft.app.db.models import MealType
from mealcraft.app.schemas.recipe import RecipeBody, RecipeDraft
from mealcraft.app.services.errors import GenerationError, GenerationInProgressError, Stage

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ContentGenerator(Protocol):
    async def request_title(self, ingredients: Sequence[str], meal_type: MealType) -> str: ...

    async def request_image(self, title: str) -> str: ...

    async def request_description(self, title: str, ingredients: Sequence[str], meal_type: MealType) -> str: ...

    async def request_body(
        self, title: str, ingredients: Sequence[str], meal_type: MealType
    ) -> Optional[RecipeBody]: ...

    async def flush_cache(self, ingredients: Sequence[str], meal_type: MealType) -> None: ...


class PersistState(str, enum.Enum):
    NONE = "none"
    SAVED = "saved"
    FAILED = "failed"
    DISCARDED = "discarded"


@dataclass
class GenerationSession:
    """State for one user's generation attempts; at most one attempt in flight."""

    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    selection: List[int] = field(default_factory=list)
    meal_type: MealType = MealType.ANY
    draft: RecipeDraft = field(default_factory=RecipeDraft)
    recipe_id: Optional[int] = None
    persist_state: PersistState = PersistState.NONE
    generating: bool = False

    @property
    def has_draft(self) -> bool:
        return not self.draft.is_empty

    @property
    def has_unsynced_result(self) -> bool:
        return self.draft.is_complete and self.persist_state in (PersistState.NONE, PersistState.FAILED)

    @property
    def can_navigate_away(self) -> bool:
        return not self.has_unsynced_result

    def toggle_meal_type(self, chosen: MealType) -> MealType:
        self.meal_type = self.meal_type.toggle(chosen)
        return self.meal_type

    def mark_saved(self, recipe_id: int) -> None:
        self.recipe_id = recipe_id
        self.persist_state = PersistState.SAVED

    def mark_persist_failed(self) -> None:
        self.recipe_id = None
        self.persist_state = PersistState.FAILED

    def discard(self) -> None:
        """Give up on an unsaved result so the session may be left."""
        if self.has_unsynced_result:
            self.persist_state = PersistState.DISCARDED


@dataclass
class StageResult(Generic[T]):
    stage: Stage
    value: Optional[T] = None
    error: Optional[GenerationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class GenerationResult:
    draft: Optional[RecipeDraft] = None
    error: Optional[GenerationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.draft is not None

    def unwrap(self) -> RecipeDraft:
        if self.error is not None:
            raise self.error
        if self.draft is None:
            raise RuntimeError("Generation result has neither a draft nor an error")
        return self.draft


async def run_stage(stage: Stage, call: Callable[..., Awaitable[Any]], *args: Any) -> StageResult:
    logger.info("Generating %s", stage.value)
    value = await call(*args)
    if not value:
        logger.warning("Generation service returned an empty %s", stage.value)
        return StageResult(stage=stage, error=GenerationError(stage))
    return StageResult(stage=stage, value=value)


class RecipeGenerator:
    def __init__(self, client: ContentGenerator):
        self.client = client

    def reset(self, session: GenerationSession) -> None:
        session.draft = RecipeDraft()
        session.recipe_id = None
        session.persist_state = PersistState.NONE

    @contextmanager
    def attempt(self, session: GenerationSession) -> Iterator[GenerationSession]:
        """Hold ``session`` for one attempt; a second attempt while held is rejected."""
        # asyncio is single-threaded, so check-and-set before the first await is atomic
        if session.generating:
            raise GenerationInProgressError(session.session_id)
        session.generating = True
        try:
            yield session
        finally:
            session.generating = False

    async def generate(
        self, session: GenerationSession, selection: Sequence[int], meal_type: MealType, ingredients: Sequence[str]
    ) -> GenerationResult:
        """
        Run the four stages for ``ingredients`` (names resolved from the
        normalized ``selection``) and fill ``session.draft`` as they finish.
        """
        with self.attempt(session):
            return await self.run(session, selection, meal_type, ingredients)

    async def regenerate(
        self, session: GenerationSession, selection: Sequence[int], meal_type: MealType, ingredients: Sequence[str]
    ) -> GenerationResult:
        with self.attempt(session):
            return await self.rerun(session, selection, meal_type, ingredients)

    async def rerun(
        self, session: GenerationSession, selection: Sequence[int], meal_type: MealType, ingredients: Sequence[str]
    ) -> GenerationResult:
        """Like ``run``, but drops the previous result and flushes cached output for these inputs first."""
        self.reset(session)
        await self.client.flush_cache(ingredients, meal_type)
        return await self.run(session, selection, meal_type, ingredients)

    async def run(
        self, session: GenerationSession, selection: Sequence[int], meal_type: MealType, ingredients: Sequence[str]
    ) -> GenerationResult:
        """Unguarded pipeline; callers hold ``attempt(session)``."""
        self.reset(session)
        session.selection = list(selection)
        session.meal_type = meal_type
        draft = session.draft

        title = await run_stage(Stage.TITLE, self.client.request_title, ingredients, meal_type)
        if not title.ok:
            return self._fail(session, title)
        draft.title = title.value

        image = await run_stage(Stage.IMAGE, self.client.request_image, draft.title)
        if not image.ok:
            return self._fail(session, image)
        draft.image_url = image.value

        description = await run_stage(
            Stage.DESCRIPTION, self.client.request_description, draft.title, ingredients, meal_type
        )
        if not description.ok:
            return self._fail(session, description)
        draft.description = description.value

        body = await run_stage(Stage.BODY, self.client.request_body, draft.title, ingredients, meal_type)
        if not body.ok:
            return self._fail(session, body)
        draft.body = body.value

        logger.info("Generated recipe '%s'", draft.title)
        return GenerationResult(draft=draft.model_copy(deep=True))

    def _fail(self, session: GenerationSession, result: StageResult) -> GenerationResult:
        session.draft = RecipeDraft()
        return GenerationResult(error=result.error)
