import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from mealcraft.app.api.deps import (
    get_db_session,
    get_generation_client,
    get_session_registry,
    get_storage_provider,
)
from mealcraft.app.core.config import get_settings
from mealcraft.app.db import models  # noqa: F401
from mealcraft.app.db.base import Base
from mealcraft.app.main import create_app
from mealcraft.app.schemas.recipe import RecipeBody
from mealcraft.app.services import image_fetcher
from mealcraft.app.services.session_service import SessionRegistry
from mealcraft.app.services.storage.local import LocalStorageProvider

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
TRANSIENT_IMAGE_URL = "https://images.example.com/generated/tmp-abc123.png"


def sample_body() -> RecipeBody:
    return RecipeBody.model_validate(
        {
            "ingredients": [
                {"name": "chicken breast", "amount": "200 g"},
                {"name": "eggs", "amount": "3"},
            ],
            "steps": ["Dice and sear the chicken.", "Scramble the eggs into the pan."],
            "prep_time_minutes": 10,
            "cook_time_minutes": 15,
            "servings": 2,
        }
    )


class FakeGenerationClient:
    """Records every call; set a response to "" or None to make that stage fail."""

    def __init__(self):
        self.responses = {
            "title": "Chicken and Egg Breakfast Hash",
            "image": TRANSIENT_IMAGE_URL,
            "description": "A hearty skillet of seared chicken and soft scrambled eggs.",
            "body": sample_body(),
        }
        self.calls = []

    @property
    def stages_called(self):
        return [name for name, _ in self.calls]

    async def request_title(self, ingredients, meal_type):
        self.calls.append(("title", (tuple(ingredients), meal_type)))
        return self.responses["title"]

    async def request_image(self, title):
        self.calls.append(("image", (title,)))
        return self.responses["image"]

    async def request_description(self, title, ingredients, meal_type):
        self.calls.append(("description", (title, tuple(ingredients), meal_type)))
        return self.responses["description"]

    async def request_body(self, title, ingredients, meal_type):
        self.calls.append(("body", (title, tuple(ingredients), meal_type)))
        return self.responses["body"]

    async def flush_cache(self, ingredients, meal_type):
        self.calls.append(("flush", (tuple(ingredients), meal_type)))


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def storage(tmp_path):
    return LocalStorageProvider(tmp_path)


@pytest.fixture
def fake_client():
    return FakeGenerationClient()


@pytest.fixture
def fetched_urls(monkeypatch):
    urls = []

    async def fake_fetch(url, transport=None):
        urls.append(url)
        return PNG_BYTES, "image/png"

    monkeypatch.setattr(image_fetcher, "fetch_image", fake_fetch)
    return urls


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.fixture
def app(db_session, storage, fake_client, registry, fetched_urls):
    app = create_app()

    def override_db():
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    app.dependency_overrides[get_storage_provider] = lambda: storage
    app.dependency_overrides[get_generation_client] = lambda: fake_client
    app.dependency_overrides[get_session_registry] = lambda: registry
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def auth_settings():
    return get_settings()


def make_token(user_id: str, email: str, settings) -> str:
    payload = {"sub": str(user_id), "email": email}
    return jwt.encode(payload, settings.auth_secret_key, algorithm=settings.auth_algorithm)


@pytest.fixture
def user_token(auth_settings):
    return make_token("user_1", "user1@example.com", auth_settings)


@pytest.fixture
def other_user_token(auth_settings):
    return make_token("user_2", "user2@example.com", auth_settings)
