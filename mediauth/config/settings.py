"""Settings for the MediAuth API."""

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEVELOPMENT = "development"
PRODUCTION = "production"

DEFAULT_ALLOWED_ORIGINS = (
    "*",
    "http://localhost:5173",
    "http://localhost:3000",
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    port: int = Field(5000, validation_alias="PORT")
    environment: str = Field(PRODUCTION, validation_alias=AliasChoices("APP_ENV", "NODE_ENV"))
    app_version: str = Field("1.0.0", validation_alias="APP_VERSION")
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")

    database_backend: str = Field("mongo", validation_alias="DATABASE_BACKEND")
    db_uri: str | None = Field(None, validation_alias="DB_URI")
    db_server_selection_timeout_ms: int = Field(15000, validation_alias="DB_SERVER_SELECTION_TIMEOUT_MS")
    db_socket_timeout_ms: int = Field(45000, validation_alias="DB_SOCKET_TIMEOUT_MS")
    db_max_pool_size: int = Field(10, validation_alias="DB_MAX_POOL_SIZE")
    # One attempt by default; startup never blocks on a retry loop unless asked to.
    db_connect_attempts: int = Field(1, validation_alias="DB_CONNECT_ATTEMPTS")
    initial_backoff_seconds: float = Field(1.0, validation_alias="INITIAL_BACKOFF_SECONDS")
    max_backoff_seconds: float = Field(10.0, validation_alias="MAX_BACKOFF_SECONDS")
    backoff_multiplier: float = Field(2.0, validation_alias="BACKOFF_MULTIPLIER")

    super_admin_email: str | None = Field(None, validation_alias="SUPER_ADMIN_EMAIL")
    jwt_secret: str | None = Field(None, validation_alias="JWT_SECRET")
    jwt_algorithm: str = Field("HS256", validation_alias="JWT_ALGORITHM")

    cors_origin: str | None = Field(None, validation_alias="CORS_ORIGIN")
    cors_allowed_origins: str | None = Field(None, validation_alias="CORS_ALLOWED_ORIGINS")

    body_limit_bytes: int = Field(10 * 1024 * 1024, validation_alias="BODY_LIMIT_BYTES")
    rate_limit_window_seconds: float = Field(15 * 60, validation_alias="RATE_LIMIT_WINDOW_SECONDS")
    rate_limit_max: int | None = Field(None, validation_alias="RATE_LIMIT_MAX")
    trust_proxy: bool = Field(False, validation_alias="TRUST_PROXY")

    diagnostics_enabled: bool | None = Field(None, validation_alias="DIAGNOSTICS_ENABLED")

    startup_probe_enabled: bool = Field(True, validation_alias="STARTUP_PROBE_ENABLED")
    startup_probe_delay_seconds: float = Field(2.0, validation_alias="STARTUP_PROBE_DELAY_SECONDS")
    startup_probe_timeout_seconds: float = Field(3.0, validation_alias="STARTUP_PROBE_TIMEOUT_SECONDS")

    @field_validator("environment")
    @classmethod
    def _normalize_environment(cls, value: str) -> str:
        return (value or PRODUCTION).strip().lower()

    @field_validator("db_uri", "jwt_secret", "super_admin_email", "cors_origin", mode="before")
    @classmethod
    def _blank_is_unset(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def is_development(self) -> bool:
        return self.environment == DEVELOPMENT

    @property
    def rate_limit_ceiling(self) -> int:
        if self.rate_limit_max is not None:
            return self.rate_limit_max
        return 1000 if self.is_development else 100

    @property
    def diagnostics_exposed(self) -> bool:
        """Whether /api/test-db and /api/test-env are mounted."""
        if self.diagnostics_enabled is not None:
            return self.diagnostics_enabled
        return self.is_development

    @property
    def allowed_origins(self) -> tuple[str, ...]:
        if self.cors_allowed_origins is None:
            return DEFAULT_ALLOWED_ORIGINS
        return tuple(o.strip() for o in self.cors_allowed_origins.split(",") if o.strip())
