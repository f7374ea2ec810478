import httpx
import pytest
from sqlalchemy.exc import OperationalError

from mealcraft.app.db import models
from mealcraft.app.db.models import MealType
from mealcraft.app.schemas.auth import CurrentUser
from mealcraft.app.schemas.recipe import RecipeDraft
from mealcraft.app.services import recipes_service
from mealcraft.app.services.errors import PersistStep, RecipeAccessError
from mealcraft.app.services.persistence_service import PersistenceGateway

from conftest import PNG_BYTES, TRANSIENT_IMAGE_URL, sample_body

NAMES = ["CHICKEN BREAST", "EGGS"]


def _draft():
    return RecipeDraft(
        title="Chicken and Egg Breakfast Hash",
        description="A hearty skillet.",
        body=sample_body(),
        image_url=TRANSIENT_IMAGE_URL,
    )


class FakeFetch:
    def __init__(self, error=None):
        self.urls = []
        self.error = error

    async def __call__(self, url):
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return PNG_BYTES, "image/png"


@pytest.mark.asyncio
async def test_persist_creates_uploads_and_backfills(db_session, storage, tmp_path):
    fetch = FakeFetch()
    gateway = PersistenceGateway(db_session, storage, fetch_image=fetch)
    token = CurrentUser(id="user_1")

    result = await gateway.persist(_draft(), NAMES, MealType.BREAKFAST, token)

    assert result.saved
    assert result.error is None
    assert result.warnings == []
    assert fetch.urls == [TRANSIENT_IMAGE_URL]
    recipe = db_session.get(models.GeneratedRecipe, result.recipe_id)
    assert recipe.user_id == "user_1"
    assert recipe.ingredients == "CHICKEN BREAST,EGGS"
    assert recipe.meal_type == MealType.BREAKFAST
    assert recipe.body["steps"][0] == "Dice and sear the chicken."
    assert recipe.image_url == f"/media/recipe-images/{recipe.id}.png"
    assert (tmp_path / "recipe-images" / f"{recipe.id}.png").read_bytes() == PNG_BYTES


@pytest.mark.asyncio
async def test_anonymous_persist_is_a_valid_write(db_session, storage):
    gateway = PersistenceGateway(db_session, storage, fetch_image=FakeFetch())

    result = await gateway.persist(_draft(), NAMES, MealType.ANY, None)

    assert result.saved
    recipe = db_session.get(models.GeneratedRecipe, result.recipe_id)
    assert recipe.user_id is None
    assert recipe.image_url.startswith("/media/recipe-images/")


@pytest.mark.asyncio
async def test_create_failure_skips_image_steps(monkeypatch, db_session, storage):
    def failing_create(db, data, token=None):
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    backfills = []
    monkeypatch.setattr(recipes_service, "create_recipe", failing_create)
    monkeypatch.setattr(recipes_service, "update_recipe_image", lambda *args, **kwargs: backfills.append(args))
    fetch = FakeFetch()

    result = await PersistenceGateway(db_session, storage, fetch_image=fetch).persist(
        _draft(), NAMES, MealType.BREAKFAST, None
    )

    assert not result.saved
    assert result.recipe_id is None
    assert result.error.step == PersistStep.CREATE
    assert fetch.urls == []
    assert backfills == []


@pytest.mark.asyncio
async def test_upload_failure_keeps_transient_url(db_session, storage):
    fetch = FakeFetch(error=httpx.ConnectError("image host unreachable"))

    result = await PersistenceGateway(db_session, storage, fetch_image=fetch).persist(
        _draft(), NAMES, MealType.LUNCH, None
    )

    assert result.saved
    assert [w.step for w in result.warnings] == [PersistStep.UPLOAD]
    recipe = db_session.get(models.GeneratedRecipe, result.recipe_id)
    assert recipe.image_url == TRANSIENT_IMAGE_URL


@pytest.mark.asyncio
async def test_backfill_failure_is_not_fatal(monkeypatch, db_session, storage):
    def denied(db, recipe_id, image_url, token=None):
        raise RecipeAccessError(recipe_id)

    monkeypatch.setattr(recipes_service, "update_recipe_image", denied)

    result = await PersistenceGateway(db_session, storage, fetch_image=FakeFetch()).persist(
        _draft(), NAMES, MealType.DINNER, CurrentUser(id="user_1")
    )

    assert result.saved
    assert [w.step for w in result.warnings] == [PersistStep.BACKFILL]
    recipe = db_session.get(models.GeneratedRecipe, result.recipe_id)
    assert recipe.image_url == TRANSIENT_IMAGE_URL


@pytest.mark.asyncio
async def test_incomplete_draft_is_rejected(db_session, storage):
    fetch = FakeFetch()
    draft = _draft()
    draft.body = None

    with pytest.raises(ValueError):
        await PersistenceGateway(db_session, storage, fetch_image=fetch).persist(draft, NAMES, MealType.ANY, None)
    assert db_session.query(models.GeneratedRecipe).count() == 0
    assert fetch.urls == []


@pytest.mark.asyncio
async def test_backfill_requires_owner_token(db_session, storage):
    result = await PersistenceGateway(db_session, storage, fetch_image=FakeFetch()).persist(
        _draft(), NAMES, MealType.ANY, CurrentUser(id="user_1")
    )

    with pytest.raises(RecipeAccessError):
        recipes_service.update_recipe_image(db_session, result.recipe_id, "/media/x.png", CurrentUser(id="user_2"))
    with pytest.raises(RecipeAccessError):
        recipes_service.update_recipe_image(db_session, result.recipe_id, "/media/x.png", None)
