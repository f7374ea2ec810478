import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette import status

from mealcraft.app.api.routes import api_router
from mealcraft.app.core.config import get_settings
from mealcraft.app.services.errors import GenerationError, GenerationInProgressError, UnknownIngredientError

logger = logging.getLogger(__name__)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    job_id = str(uuid.uuid4())
    details = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", []) if part is not None)
        msg = err.get("msg", "Invalid value")
        details.append({"field": loc or None, "message": msg})
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "validation_error",
            "message": "Invalid request payload.",
            "details": details,
            "job_id": job_id,
        },
    )


async def generation_exception_handler(request: Request, exc: GenerationError):
    logger.warning("Recipe generation failed at stage %s", exc.stage.value)
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"error_code": "generation_failed", "stage": exc.stage.value, "message": exc.message},
    )


async def in_progress_exception_handler(request: Request, exc: GenerationInProgressError):
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"error_code": "generation_in_progress", "message": str(exc)},
    )


async def unknown_ingredient_handler(request: Request, exc: UnknownIngredientError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "unknown_ingredient",
            "message": "Unknown ingredient ids.",
            "details": [{"field": "ingredient_ids", "message": str(i)} for i in exc.ingredient_ids],
        },
    )


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Mealcraft", version="0.1.0")
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(GenerationError, generation_exception_handler)
    app.add_exception_handler(GenerationInProgressError, in_progress_exception_handler)
    app.add_exception_handler(UnknownIngredientError, unknown_ingredient_handler)
    app.include_router(api_router)
    app.mount("/media", StaticFiles(directory=settings.media_root), name="media")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.on_event("startup")
    async def startup_event() -> None:
        from mealcraft.app.db import models  # noqa: F401
        from mealcraft.app.db.base import Base
        from mealcraft.app.db.session import engine

        Base.metadata.create_all(bind=engine)
        logger.info("Database tables ready")

    return app


app = create_app()
