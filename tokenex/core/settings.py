"""Application settings loaded from environment variables."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tokenex.trust.types import TrustedIssuer

TOKEN_EXPIRY_DEFAULT = 300
RSA_KEY_SIZE_DEFAULT = 2048
CLOCK_SKEW_DEFAULT = 60
JWKS_CACHE_TTL_DEFAULT = 300
JWKS_FETCH_TIMEOUT_DEFAULT = 5.0
JWKS_MIN_REFRESH_INTERVAL_DEFAULT = 30
DB_POOL_SIZE_DEFAULT = 5
DB_MAX_OVERFLOW_DEFAULT = 10
DB_PORT_DEFAULT = 5432


class DatabaseSettings(BaseSettings):
    """PostgreSQL connection settings for the client registry."""

    model_config = SettingsConfigDict(env_prefix="AUTH_DB_")

    host: str = "localhost"
    port: int = DB_PORT_DEFAULT
    user: str = "tokenex"
    password: str = "tokenex"
    database: str = "tokenex"
    pool_size: int = DB_POOL_SIZE_DEFAULT
    max_overflow: int = DB_MAX_OVERFLOW_DEFAULT
    create_schema: bool = False

    @property
    def async_url(self) -> str:
        """Build async PostgreSQL connection URL."""
        return (
            f"postgresql+asyncpg://{self.user}:{self.password}"
            f"@{self.host}:{self.port}/{self.database}"
        )


class AuthSettings(BaseSettings):
    """Token exchange and trust settings."""

    model_config = SettingsConfigDict(env_prefix="AUTH_")

    issuer_url: str = "http://localhost:8000"
    token_expiry_seconds: int = Field(default=TOKEN_EXPIRY_DEFAULT, gt=0)
    key_size: int = Field(default=RSA_KEY_SIZE_DEFAULT, ge=2048)
    signing_key_pem: str = ""
    subject_token_issuers: list[TrustedIssuer] = Field(default_factory=list)
    clock_skew_seconds: int = Field(default=CLOCK_SKEW_DEFAULT, ge=0)
    jwks_cache_ttl_seconds: int = Field(default=JWKS_CACHE_TTL_DEFAULT, gt=0)
    jwks_fetch_timeout_seconds: float = Field(default=JWKS_FETCH_TIMEOUT_DEFAULT, gt=0)
    jwks_min_refresh_interval_seconds: int = Field(
        default=JWKS_MIN_REFRESH_INTERVAL_DEFAULT, ge=0
    )
    signing_key_rotation_seconds: int = Field(default=0, ge=0)
    registration_token: str = ""
    log_level: str = "INFO"

    @field_validator("subject_token_issuers")
    @classmethod
    def _unique_issuers(cls, value: list[TrustedIssuer]) -> list[TrustedIssuer]:
        seen: set[str] = set()
        for trusted in value:
            if trusted.issuer in seen:
                raise ValueError(f"duplicate subject token issuer: {trusted.issuer}")
            seen.add(trusted.issuer)
        return value

    @property
    def issuer(self) -> str:
        """This server's issuer identifier, without trailing slash."""
        return self.issuer_url.rstrip("/")

    @property
    def token_endpoint(self) -> str:
        """Audience that client assertions must be addressed to."""
        return f"{self.issuer}/oauth/token"

    @property
    def jwks_uri(self) -> str:
        return f"{self.issuer}/oauth/jwks"
