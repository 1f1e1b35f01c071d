from functools import lru_cache
import json
import logging
import os
from typing import Any, Literal

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.user.enums import UserRole

logger = logging.getLogger(__name__)


def parse_str_list(v: Any) -> list[str]:
    """
    Accepts a list, a JSON array string, or a comma/semicolon separated string.
    """
    if v is None:
        return []
    if isinstance(v, list):
        return [str(item) for item in v]
    if isinstance(v, str) and v.strip().startswith("[") and v.strip().endswith("]"):
        try:
            parsed = json.loads(v)
            if isinstance(parsed, list):
                return [str(item) for item in parsed]
        except json.JSONDecodeError:
            pass
    sep = "," if "," in v else ";"
    return [item.strip() for item in v.split(sep) if item.strip()]


class RedisConfig(BaseModel):
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str = ""
    REDIS_DATABASE: str = "0"

    model_config = ConfigDict(extra="ignore")

    @property
    def dsn(self) -> str:
        return (
            f"redis://:"
            f"{self.REDIS_PASSWORD}@"
            f"{self.REDIS_HOST}:"
            f"{self.REDIS_PORT}/"
            f"{self.REDIS_DATABASE}"
        )


class SentryConfig(BaseModel):
    SENTRY_DSN: str | None = None
    SENTRY_ENV: str = "development"
    SENTRY_ENABLED: bool = False

    model_config = ConfigDict(extra="ignore")


class JWTConfig(BaseModel):
    # Both secrets are mandatory in production; elsewhere an ephemeral one is generated.
    JWT_ACCESS_SECRET_KEY: str | None = None
    JWT_REFRESH_SECRET_KEY: str | None = None

    ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "industrial-inventory-api"
    JWT_AUDIENCE: str = "industrial-inventory-users"

    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(60, gt=0)
    REFRESH_TOKEN_EXPIRE_MINUTES: int = Field(10_080, gt=0)
    RESET_PASSWORD_TOKEN_EXPIRE_MINUTES: int = Field(30, gt=0)
    VERIFY_EMAIL_TOKEN_EXPIRE_MINUTES: int = Field(60, gt=0)
    API_KEY_TOKEN_EXPIRE_MINUTES: int = Field(525_600, gt=0)
    TEMPORARY_ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(30, gt=0)
    IMPERSONATION_TOKEN_EXPIRE_MINUTES: int = Field(60, gt=0)

    TOKEN_EXPIRING_SOON_SECONDS: int = Field(300, ge=0)

    model_config = ConfigDict(extra="ignore")

    @field_validator("JWT_ACCESS_SECRET_KEY", "JWT_REFRESH_SECRET_KEY", mode="before")
    @classmethod
    def empty_secret_is_missing(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class AuthConfig(BaseModel):
    REVOCATION_BACKEND: Literal["memory", "redis"] = "memory"
    REVOCATION_SWEEP_INTERVAL_SECONDS: int = Field(3600, gt=0)

    FAILED_ATTEMPTS_BACKEND: Literal["memory", "redis"] = "memory"
    FAILED_ATTEMPTS_LIMIT: int = Field(5, gt=0)
    FAILED_ATTEMPTS_WINDOW_MINUTES: int = Field(15, gt=0)

    AUTHZ_WRITE_ROLES: list[str] = Field(["ADMIN", "MANAGER", "USER", "SUPERVISOR"])
    # Empty means any known role may read
    AUTHZ_READ_ROLES: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @field_validator("AUTHZ_WRITE_ROLES", "AUTHZ_READ_ROLES", mode="before")
    @classmethod
    def parse_role_list(cls, v: Any) -> list[str]:
        return [role.upper() for role in parse_str_list(v)]

    @field_validator("AUTHZ_WRITE_ROLES", "AUTHZ_READ_ROLES")
    @classmethod
    def validate_role_names(cls, v: list[str]) -> list[str]:
        unknown = sorted(set(v) - UserRole.values())
        if unknown:
            raise ValueError(f"Unknown roles: {', '.join(unknown)}")
        return v

    @property
    def uses_redis(self) -> bool:
        return "redis" in {self.REVOCATION_BACKEND, self.FAILED_ATTEMPTS_BACKEND}


class AppConfig(BaseModel):
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    TESTING: bool = False
    ENVIRONMENT: str = "development"

    LOG_LEVEL: str = "INFO"
    LOG_LEVEL_FILE: str = "WARNING"

    CORS_ALLOWED_ORIGINS: list[str] = Field(["*"])
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOWED_METHODS: list[str] = Field(["*"])
    CORS_ALLOWED_HEADERS: list[str] = Field(["*"])
    CORS_EXPOSE_HEADERS: list[str] = Field(["X-Token-Expiring-Soon", "Retry-After"])

    TRUST_PROXY_HEADERS: bool = False

    PROJECT_NAME: str = "Inventory API"

    model_config = ConfigDict(extra="ignore")

    @field_validator(
        "CORS_ALLOWED_ORIGINS",
        "CORS_ALLOWED_METHODS",
        "CORS_ALLOWED_HEADERS",
        "CORS_EXPOSE_HEADERS",
        mode="before",
    )
    @classmethod
    def parse_cors_list(cls, v: Any) -> list[str]:
        return parse_str_list(v)

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.strip().lower() == "production"


class Config(BaseModel):
    app: AppConfig = Field(default_factory=AppConfig)
    jwt: JWTConfig = Field(default_factory=JWTConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    redis: RedisConfig = Field(default_factory=RedisConfig)
    sentry: SentryConfig = Field(default_factory=SentryConfig)

    model_config = ConfigDict(extra="ignore")


@lru_cache
def get_settings() -> Config:
    """
    Cached settings factory. Override in tests via monkeypatching or dependency overrides.
    """
    env_filename = ".env.test" if os.getenv("TESTING") == "true" else ".env"
    env_file_values = dotenv_values(env_filename)
    merged_env: dict[str, Any] = {
        k: v
        for k, v in {**env_file_values, **dict(os.environ)}.items()
        if v is not None
    }
    logger.debug("Loading settings (env file: %s)", env_filename)

    return Config(
        app=AppConfig(**merged_env),
        jwt=JWTConfig(**merged_env),
        auth=AuthConfig(**merged_env),
        redis=RedisConfig(**merged_env),
        sentry=SentryConfig(**merged_env),
    )


config = get_settings()
