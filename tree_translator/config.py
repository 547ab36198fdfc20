import os
import tempfile
from functools import lru_cache
from typing import Annotated, List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _default_jobs_base_dir() -> str:
    return os.path.join(tempfile.gettempdir(), "project-translate-jobs")


class Settings(BaseSettings):
    # Basic environment settings
    ENVIRONMENT: str = "development"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # CORS settings: Allowed origins should be provided as a comma-separated list in the env var.
    ALLOWED_ORIGINS: Annotated[List[str], NoDecode] = Field(default=["http://localhost", "http://127.0.0.1"])

    # Logging configuration
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None

    # Workspace settings
    JOBS_BASE_DIR: str = Field(default_factory=_default_jobs_base_dir)
    # Sandboxed/serverless hosts only allow writes under the temp directory.
    RESTRICTED_ENVIRONMENT: bool = Field(
        False, validation_alias=AliasChoices("RESTRICTED_ENVIRONMENT", "VERCEL")
    )

    # Job processing limits
    MAX_TRANSLATE_FILE_BYTES: int = 2 * 1024 * 1024
    MAX_UPLOAD_FILE_COUNT: int = 3000
    MAX_SINGLE_UPLOAD_BYTES: int = 2 * 1024 * 1024
    MAX_TOTAL_UPLOAD_BYTES: int = 80 * 1024 * 1024
    GIT_CLONE_TIMEOUT: int = 120

    # Translator providers
    DEFAULT_TARGET_LANGUAGE: str = "Traditional Chinese (zh-TW)"
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4.1-mini"
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.0-flash"
    LOCAL_TRANSLATOR_URL: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("ALLOWED_ORIGINS", mode="before")
    def assemble_allowed_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("RESTRICTED_ENVIRONMENT", mode="before")
    def parse_restricted_flag(cls, v):
        # Hosting platforms set the flag to arbitrary non-empty values such as "1".
        if isinstance(v, str):
            return v.strip().lower() not in {"", "0", "false", "no", "off"}
        return v


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
