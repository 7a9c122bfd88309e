"""
Central feature flags. One file controls every external dependency.

Set via environment variables (prefix FF_) or .env file.
When a flag is OFF, the system uses a local fallback. Nothing crashes.
"""

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FeatureFlags(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Auth ─────────────────────────────────────────────────────────
    use_auth0: bool = Field(default=True, alias="FF_USE_AUTH0")
    # ON  → JWT validated via Auth0 JWKS. Needs AUTH0_DOMAIN, AUTH0_AUDIENCE.
    # OFF → Dev user injected (user_id="dev-user"). No token needed.

    # ── Storage ──────────────────────────────────────────────────────
    use_s3: bool = Field(default=True, alias="FF_USE_S3")
    # ON  → Blobs go to AWS S3, signed URLs are presigned S3 URLs.
    # OFF → Blobs saved under LOCAL_STORAGE_PATH, signed URLs point at /api/files.

    # ── Realtime ─────────────────────────────────────────────────────
    use_redis: bool = Field(default=True, alias="FF_USE_REDIS")
    # ON  → Document status changes published on Redis. Needs REDIS_URL.
    # OFF → Notifications silently skipped.

    # ── OCR ──────────────────────────────────────────────────────────
    use_ocr: bool = Field(default=True, alias="FF_USE_OCR")
    # ON  → PDFs sent to the FJSoftLab OCR service. Needs FJSOFTLAB_OCR_API_KEY.
    # OFF → Text layer read locally with pdfplumber. Scanned PDFs → empty text.


@lru_cache
def get_flags() -> FeatureFlags:
    return FeatureFlags()
