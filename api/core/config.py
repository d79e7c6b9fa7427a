"""Application configuration using pydantic-settings."""

from functools import cached_property, lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # "development" disables graceful-shutdown signal handling
    environment: str = "production"

    host: str = "0.0.0.0"
    port: int = 3400

    # Requests per minute per client on /chart. Unset disables rate limiting.
    rate_limit_per_min: int | None = None

    # Use "redis://host:port" for limits shared across processes
    # memory:// only works for single-instance deployments
    ratelimit_storage_uri: str = "memory://"

    # Comma-separated list of keys that bypass rate limiting
    # Example: "key-one,key-two"
    api_keys: str = ""

    # External chart rendering service. Receives the validated chart spec
    # as JSON and answers with PNG bytes.
    chart_renderer_url: str = ""

    http_timeout: float = 10.0

    @field_validator("rate_limit_per_min", mode="before")
    @classmethod
    def _blank_limit_disables(cls, value: object) -> object:
        # RATE_LIMIT_PER_MIN= (set but empty) means "no limit", like unset
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def rate_limiting_enabled(self) -> bool:
        return self.rate_limit_per_min is not None

    @cached_property
    def privileged_keys(self) -> frozenset[str]:
        """Parsed API_KEYS, blanks dropped."""
        return frozenset(
            key.strip() for key in self.api_keys.split(",") if key.strip()
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this in tests to reset settings between test cases.
    After clearing, the next get_settings() call will create
    a fresh Settings instance with current environment variables.

    Example:
        def test_something(monkeypatch):
            monkeypatch.setenv("RATE_LIMIT_PER_MIN", "10")
            clear_settings_cache()
            settings = get_settings()  # Fresh instance
    """
    get_settings.cache_clear()
