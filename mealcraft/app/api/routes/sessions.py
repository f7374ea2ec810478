import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from mealcraft.app.api.deps import (
    get_db_session,
    get_optional_user,
    get_recipe_generator,
    get_session_registry,
    get_storage_provider,
)
from mealcraft.app.core.config import get_settings
from mealcraft.app.schemas.auth import CurrentUser
from mealcraft.app.schemas.session import (
    GenerateRequest,
    GenerateResponse,
    MealTypeRequest,
    RegenerateRequest,
    SessionRead,
)
from mealcraft.app.services import session_service
from mealcraft.app.services.generation_service import GenerationSession, RecipeGenerator
from mealcraft.app.services.persistence_service import PersistenceGateway
from mealcraft.app.services.session_service import SessionRegistry
from mealcraft.app.services.storage.base import StorageProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _get_session(registry: SessionRegistry, session_id: str) -> GenerationSession:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return session


@router.post("", response_model=SessionRead, status_code=status.HTTP_201_CREATED)
def create_session(registry: SessionRegistry = Depends(get_session_registry)):
    return SessionRead.from_session(registry.create())


@router.get("/{session_id}", response_model=SessionRead)
def get_session(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    return SessionRead.from_session(_get_session(registry, session_id))


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_session(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    if not registry.remove(session_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    logger.info("Session %s removed", session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{session_id}/meal-type", response_model=SessionRead)
def toggle_meal_type(
    session_id: str,
    payload: MealTypeRequest,
    registry: SessionRegistry = Depends(get_session_registry),
):
    session = _get_session(registry, session_id)
    session.toggle_meal_type(payload.meal_type)
    return SessionRead.from_session(session)


@router.post("/{session_id}/discard", response_model=SessionRead)
def discard_draft(session_id: str, registry: SessionRegistry = Depends(get_session_registry)):
    session = _get_session(registry, session_id)
    session.discard()
    return SessionRead.from_session(session)


@router.post("/{session_id}/generate", response_model=GenerateResponse)
async def generate_recipe(
    session_id: str,
    payload: GenerateRequest,
    db: Session = Depends(get_db_session),
    storage: StorageProvider = Depends(get_storage_provider),
    generator: RecipeGenerator = Depends(get_recipe_generator),
    registry: SessionRegistry = Depends(get_session_registry),
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
):
    session = _get_session(registry, session_id)
    outcome = await session_service.generate_and_save(
        session,
        generator,
        PersistenceGateway(db, storage),
        get_settings().static_data_dir,
        payload.ingredient_ids,
        payload.meal_type or session.meal_type,
        token=current_user,
    )
    return GenerateResponse.from_outcome(outcome)


@router.post("/{session_id}/regenerate", response_model=GenerateResponse)
async def regenerate_recipe(
    session_id: str,
    payload: Optional[RegenerateRequest] = None,
    db: Session = Depends(get_db_session),
    storage: StorageProvider = Depends(get_storage_provider),
    generator: RecipeGenerator = Depends(get_recipe_generator),
    registry: SessionRegistry = Depends(get_session_registry),
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
):
    session = _get_session(registry, session_id)
    payload = payload or RegenerateRequest()
    ingredient_ids = payload.ingredient_ids or session.selection
    if not ingredient_ids:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No ingredients selected")
    meal_type = payload.meal_type or session.meal_type
    outcome = await session_service.generate_and_save(
        session,
        generator,
        PersistenceGateway(db, storage),
        get_settings().static_data_dir,
        ingredient_ids,
        meal_type,
        token=current_user,
        regenerate=True,
    )
    return GenerateResponse.from_outcome(outcome)
