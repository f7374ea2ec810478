from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from mealcraft.app.core.config import get_settings
from mealcraft.app.db.session import get_db
from mealcraft.app.schemas.auth import CurrentUser
from mealcraft.app.services.generation_client import GenerationClient
from mealcraft.app.services.generation_service import RecipeGenerator
from mealcraft.app.services.session_service import SessionRegistry
from mealcraft.app.services.storage.base import StorageProvider
from mealcraft.app.services.storage.local import LocalStorageProvider
from mealcraft.app.services.storage.s3 import S3StorageProvider

security = HTTPBearer(auto_error=True)
optional_security = HTTPBearer(auto_error=False)


def _decode_token(token: str) -> CurrentUser:
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.auth_secret_key, algorithms=[settings.auth_algorithm])
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    sub = payload.get("sub")
    if sub is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    return CurrentUser(id=str(sub), email=payload.get("email"))


def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> CurrentUser:
    return _decode_token(credentials.credentials)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
) -> Optional[CurrentUser]:
    """No Authorization header means an anonymous caller; a bad token is still rejected."""
    if credentials is None:
        return None
    return _decode_token(credentials.credentials)


def get_db_session(db: Session = Depends(get_db)) -> Session:
    return db


def get_storage_provider() -> StorageProvider:
    settings = get_settings()
    if settings.recipe_image_s3_bucket:
        return S3StorageProvider(
            settings.recipe_image_s3_bucket,
            settings.recipe_image_s3_prefix,
            settings.recipe_image_public_base_url,
        )
    return LocalStorageProvider(settings.media_root, settings.recipe_image_s3_prefix)


@lru_cache
def get_generation_client() -> GenerationClient:
    return GenerationClient(get_settings())


def get_recipe_generator(client: GenerationClient = Depends(get_generation_client)) -> RecipeGenerator:
    return RecipeGenerator(client)


@lru_cache
def get_session_registry() -> SessionRegistry:
    return SessionRegistry(get_settings().session_idle_ttl_seconds)
