"""
Central configuration. All API keys and settings in one place.
"""

from functools import lru_cache
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Environment ---
    env: str = Field(default="development", alias="ENV")
    log_level: str = Field(default="info", alias="LOG_LEVEL")
    debug: bool = Field(default=False, alias="DEBUG")

    # --- Database ---
    database_url: str = Field(
        default="sqlite+aiosqlite:///./cvextract.db",
        alias="DATABASE_URL",
    )

    # --- Auth0 ---
    auth0_domain: str = Field(default="", alias="AUTH0_DOMAIN")
    auth0_audience: str = Field(default="", alias="AUTH0_AUDIENCE")
    auth0_algorithm: str = Field(default="RS256", alias="AUTH0_ALGORITHM")

    # --- Completion service (OpenAI) ---
    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    openai_base_url: str = Field(default="https://api.openai.com/v1", alias="OPENAI_BASE_URL")
    openai_model: str = Field(default="gpt-4.1-2025-04-14", alias="OPENAI_MODEL")
    openai_max_completion_tokens: int = Field(default=1000, alias="OPENAI_MAX_COMPLETION_TOKENS")

    # --- OCR (FJSoftLab) ---
    ocr_api_key: str = Field(default="", alias="FJSOFTLAB_OCR_API_KEY")
    ocr_base_url: str = Field(default="https://ocr.fjsoftlab.com", alias="OCR_BASE_URL")
    ocr_poll_interval: float = Field(default=5.0, alias="OCR_POLL_INTERVAL")
    ocr_max_attempts: int = Field(default=60, alias="OCR_MAX_ATTEMPTS")

    # --- Storage ---
    aws_access_key_id: str = Field(default="", alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: str = Field(default="", alias="AWS_SECRET_ACCESS_KEY")
    aws_region: str = Field(default="eu-west-3", alias="AWS_REGION")
    s3_bucket_name: str = Field(default="documents", alias="S3_BUCKET_NAME")
    local_storage_path: str = Field(default="./local_storage", alias="LOCAL_STORAGE_PATH")
    signed_url_ttl: int = Field(default=600, alias="SIGNED_URL_TTL")
    public_base_url: str = Field(default="http://localhost:3000", alias="PUBLIC_BASE_URL")
    signing_secret: str = Field(default="change-me", alias="SIGNING_SECRET")

    # --- Redis ---
    redis_url: str = Field(default="", alias="REDIS_URL")

    # --- API ---
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=3000, validation_alias=AliasChoices("PORT", "WEBSITES_PORT"))
    frontend_url: str = Field(default="", alias="FRONTEND_ULR")
    cors_origins: str = Field(
        default="http://localhost:5173,http://localhost:8080",
        alias="CORS_ORIGINS",
    )

    def allowed_origins(self) -> list[str]:
        """CORS whitelist: configured origins plus the production frontend."""
        origins = [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        if self.frontend_url and self.frontend_url not in origins:
            origins.append(self.frontend_url.rstrip("/"))
        return origins


@lru_cache
def get_settings() -> Settings:
    return Settings()
