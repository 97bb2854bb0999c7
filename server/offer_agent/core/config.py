import re
from functools import lru_cache

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PRIVATE_KEY_MARKER = "BEGIN PRIVATE KEY"


class ConfigurationError(Exception):
    """Raised when the process environment cannot produce a usable Settings."""


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
        frozen=True,
    )

    app_name: str = Field(default="DocuSign Agent")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, validation_alias="PORT")
    log_level: str = Field(default="INFO")

    # Shared secret expected in the x-agent-auth header
    agent_token: str = Field(validation_alias="MY_AGENT_TOKEN", min_length=1)
    public_health_check: bool = Field(default=False, description="Serve GET / without the shared secret")
    max_concurrent_requests: int = Field(default=32, ge=0, description="In-flight request cap, 0 disables")

    # DocuSign service account
    client_id: str = Field(validation_alias="dsJWTClientId", min_length=1)
    oauth_host: str = Field(validation_alias="dsOauthServer", min_length=1)
    impersonated_user_guid: str = Field(validation_alias="impersonatedUserGuid", min_length=1)
    private_key: str = Field(validation_alias="PRIVATE_KEY", repr=False)
    template_id: str = Field(validation_alias="TEMPLATE_ID", min_length=1)
    provider_timeout_seconds: float = Field(default=30, gt=0)
    token_lifetime_seconds: int = Field(default=3600, gt=0)
    token_cache_enabled: bool = Field(default=False)

    @field_validator("oauth_host")
    @classmethod
    def strip_scheme(cls, value: str) -> str:
        return re.sub(r"^https?://", "", value.strip()).rstrip("/")

    @field_validator("private_key")
    @classmethod
    def validate_private_key(cls, value: str) -> str:
        # .env files usually carry the PEM on one line with escaped newlines
        value = value.replace("\\n", "\n").strip()
        if PRIVATE_KEY_MARKER not in value:
            raise ValueError("PRIVATE_KEY is missing or malformed")
        return value


def load_settings(**overrides) -> Settings:
    """
    Build Settings from the environment, converting validation failures.

    Callers treat ConfigurationError as fatal: the server must not bind its
    port with an unusable configuration.
    """
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        problems = ", ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'settings'}: {error['msg']}"
            for error in exc.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {problems}") from exc


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are read once per process and are immutable afterwards.
    """
    return load_settings()


def clear_settings_cache() -> None:
    """Clear the cached settings instance (used by tests)."""
    get_settings.cache_clear()
