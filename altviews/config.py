from __future__ import annotations

from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_project_root = Path(__file__).resolve().parents[1]
load_dotenv(_project_root / ".env", override=False)

ImageProviderName = Literal["leonardo", "runware", "placeholder"]


class Settings(BaseSettings):
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    BACKEND_CORS_ORIGINS: list[str] = ["*"]

    # Echo raw upstream payloads back to callers in error responses.
    EXPOSE_UPSTREAM_DETAILS: bool = False

    ANTHROPIC_API_KEY: str | None = None
    ANTHROPIC_BASE_URL: str | None = None
    ANTHROPIC_MODEL: str = "claude-3-5-haiku-20241022"
    ANTHROPIC_MAX_TOKENS: int = Field(default=1200, ge=1)
    ANTHROPIC_TEMPERATURE: float = Field(default=0.7, ge=0.0, le=1.0)
    LLM_REQUEST_TIMEOUT_SECONDS: float = 60.0
    MAX_ARTICLE_CHARS: int = Field(default=20000, ge=1)
    VIEWS_PER_ARTICLE: int = Field(default=3, ge=1, le=6)

    IMAGE_PROVIDER: ImageProviderName = "leonardo"
    GENERATE_IMAGES_BY_DEFAULT: bool = False
    IMAGE_REQUEST_TIMEOUT_SECONDS: float = 30.0

    LEONARDO_API_KEY: str | None = None
    LEONARDO_API_BASE_URL: str = "https://cloud.leonardo.ai/api/rest/v1"
    LEONARDO_MODEL_ID: str = "6b645e3a-d64f-4341-a6d8-7a3690fbf042"
    LEONARDO_STYLE_UUID: str = "111dc692-d470-4eec-b791-3475abac4c46"
    LEONARDO_CONTRAST: float = 3.5
    LEONARDO_ALCHEMY: bool = True
    IMAGE_WIDTH: int = 1472
    IMAGE_HEIGHT: int = 832
    IMAGE_NUM_IMAGES: int = Field(default=4, ge=1, le=8)
    IMAGE_POLL_INTERVAL_SECONDS: float = 7.0
    IMAGE_POLL_MAX_ATTEMPTS: int = 10

    RUNWARE_API_KEY: str | None = None
    RUNWARE_API_URL: str = "https://api.runware.ai/v1"
    RUNWARE_DEFAULT_MODEL: str = "civitai:102438@133677"
    RUNWARE_DEFAULT_WIDTH: int = 1024
    RUNWARE_DEFAULT_HEIGHT: int = 704

    PLACEHOLDER_IMAGE_URL_TEMPLATE: str = "https://picsum.photos/seed/{seed}/800/600"

    FETCH_TIMEOUT_SECONDS: float = 20.0
    FETCH_USER_AGENT: str = (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    )

    @field_validator("IMAGE_POLL_INTERVAL_SECONDS")
    @classmethod
    def validate_poll_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("IMAGE_POLL_INTERVAL_SECONDS must be positive")
        return value

    @field_validator("IMAGE_POLL_MAX_ATTEMPTS")
    @classmethod
    def validate_poll_attempts(cls, value: int) -> int:
        if value < 1:
            raise ValueError("IMAGE_POLL_MAX_ATTEMPTS must be at least 1")
        return value

    @field_validator("PLACEHOLDER_IMAGE_URL_TEMPLATE")
    @classmethod
    def validate_placeholder_template(cls, value: str) -> str:
        if "{seed}" not in value:
            raise ValueError("PLACEHOLDER_IMAGE_URL_TEMPLATE must contain a {seed} placeholder")
        return value

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
