"""
config.py

Application-wide configuration.

Environment variables (and an optional .env file) are loaded through
pydantic BaseSettings and exposed as a single settings object.

Main settings:
- database connection
- JWT secrets and token lifetimes
- verification / password-reset code lifetimes
- SMTP transport for notification emails
- permanent deletion (purge) job
- CORS origins and logging level

Related files:
- mss.main               : app factory, CORS and logging setup
- mss.core.security      : password hashing and the token codec
- mss.db.session         : DATABASE_URL
- mss.services.email     : SMTP settings
- mss.services.purge     : PURGE_* settings

"""

from functools import lru_cache
from typing import List

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "MSS Backend"
    API_V1_PREFIX: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = "sqlite:///./mss.db"
    TEST_DATABASE_URL: str | None = None

    # access and refresh tokens are signed with separate keys
    SECRET_KEY: SecretStr = SecretStr("change-me-in-production")
    REFRESH_SECRET_KEY: SecretStr = SecretStr("change-me-too-in-production")
    ALGORITHM: str = "HS256"

    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    VERIFICATION_CODE_EXPIRE_HOURS: int = 3
    PASSWORD_CODE_EXPIRE_MINUTES: int = 60

    BCRYPT_ROUNDS: int = 12

    # links in emails are built as FRONTEND_URL + "verify?..." / "reset-password?..."
    FRONTEND_URL: str = "http://localhost:4200/"

    # SMTP; when SMTP_HOST is empty emails are only logged (dev mode)
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USER: str | None = None
    SMTP_PASSWORD: SecretStr | None = None
    SMTP_USE_TLS: bool = True
    SMTP_TIMEOUT_SEC: float = 30.0
    MAIL_FROM: str | None = None
    MAIL_FROM_NAME: str = "MSS"

    PURGE_ENABLED: bool = True
    PURGE_RETENTION_DAYS: int = 7

    CORS_ORIGINS: List[str] = ["http://localhost:4200"]

    @field_validator("SECRET_KEY", "REFRESH_SECRET_KEY")
    @classmethod
    def validate_secret(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value() or not v.get_secret_value().strip():
            raise ValueError("JWT secrets must be set and non-empty")
        return v

    @field_validator("ACCESS_TOKEN_EXPIRE_MINUTES")
    @classmethod
    def validate_access_lifetime(cls, v: int) -> int:
        if v < 1 or v > 1440:
            raise ValueError("ACCESS_TOKEN_EXPIRE_MINUTES must be between 1 and 1440")
        return v

    @field_validator("REFRESH_TOKEN_EXPIRE_DAYS")
    @classmethod
    def validate_refresh_lifetime(cls, v: int) -> int:
        if v < 1 or v > 90:
            raise ValueError("REFRESH_TOKEN_EXPIRE_DAYS must be between 1 and 90")
        return v

    @field_validator("BCRYPT_ROUNDS")
    @classmethod
    def validate_bcrypt_rounds(cls, v: int) -> int:
        if v < 4 or v > 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31")
        return v

    @field_validator("PURGE_RETENTION_DAYS")
    @classmethod
    def validate_retention_days(cls, v: int) -> int:
        if v < 1 or v > 365:
            raise ValueError("PURGE_RETENTION_DAYS must be between 1 and 365")
        return v

    @field_validator("FRONTEND_URL")
    @classmethod
    def validate_frontend_url(cls, v: str) -> str:
        v = v.strip()
        if not (v.startswith("http://") or v.startswith("https://")):
            raise ValueError("FRONTEND_URL must use http or https")
        return v if v.endswith("/") else v + "/"


@lru_cache
def get_settings() -> Settings:
    return Settings()


# imported across the app; created once per process
settings = get_settings()
