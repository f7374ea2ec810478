import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = Field("sqlite:///./mealcraft.db", alias="DATABASE_URL")
    auth_secret_key: str = Field("change-me", alias="AUTH_SECRET_KEY")
    auth_algorithm: str = Field("HS256", alias="AUTH_ALGORITHM")
    media_root: Path = Field(Path("media"), alias="MEDIA_ROOT")
    static_data_dir: Path = Field(Path(__file__).resolve().parents[2] / "static_data", alias="STATIC_DATA_DIR")
    llm_base_url: str | None = Field(None, alias="LLM_BASE_URL")
    llm_api_key: str | None = Field(None, alias="LLM_API_KEY")
    llm_text_model_name: str = Field("gpt-3.5-turbo", alias="LLM_TEXT_MODEL_NAME")
    llm_image_model_name: str = Field("dall-e-2", alias="LLM_IMAGE_MODEL_NAME")
    llm_image_size: str = Field("512x512", alias="LLM_IMAGE_SIZE")
    llm_timeout_seconds: int = Field(60, alias="LLM_TIMEOUT_SECONDS")
    llm_temperature: float = Field(0.7, alias="LLM_TEMPERATURE")
    # 0 disables response caching; flush is then a no-op locally
    generation_cache_ttl_seconds: int = Field(3600, alias="GENERATION_CACHE_TTL_SECONDS")
    generation_cache_flush_url: str | None = Field(None, alias="GENERATION_CACHE_FLUSH_URL")
    session_idle_ttl_seconds: int = Field(3600, alias="SESSION_IDLE_TTL_SECONDS")
    image_fetch_timeout_seconds: int = Field(30, alias="IMAGE_FETCH_TIMEOUT_SECONDS")
    recipe_image_max_bytes: int = Field(10 * 1024 * 1024, alias="RECIPE_IMAGE_MAX_BYTES")
    recipe_image_s3_bucket: str | None = Field(None, alias="RECIPE_IMAGE_S3_BUCKET")
    recipe_image_s3_prefix: str = Field("recipe-images", alias="RECIPE_IMAGE_S3_PREFIX")
    recipe_image_public_base_url: str | None = Field(None, alias="RECIPE_IMAGE_PUBLIC_BASE_URL")
    s3_endpoint_url: str | None = Field(None, alias="S3_ENDPOINT_URL")
    s3_region: str | None = Field(None, alias="S3_REGION")
    s3_force_path_style: bool = Field(False, alias="S3_FORCE_PATH_STYLE")
    aws_access_key_id: str | None = Field(None, alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: str | None = Field(None, alias="AWS_SECRET_ACCESS_KEY")

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore", populate_by_name=True)


logger = logging.getLogger(__name__)


@lru_cache
def get_settings() -> Settings:
    try:
        settings = Settings()
    except PermissionError:
        logger.warning("Unable to read .env; continuing with environment variables only")
        settings = Settings(_env_file=None)
    settings.media_root.mkdir(parents=True, exist_ok=True)
    return settings
