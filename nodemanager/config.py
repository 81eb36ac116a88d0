"""
Application configuration.

Loads settings from environment variables with sensible defaults.
The defaults match the paths the supervisor mounts into the container.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings

MIN_JWT_KEY_SIZE = 2048


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # ==========================================================================
    # Environment
    # ==========================================================================

    environment: str = "development"
    debug: bool = True

    # ==========================================================================
    # API Server
    # ==========================================================================

    api_host: str = "0.0.0.0"
    api_port: int = 3006
    cors_origins: str = "http://localhost:3000,http://citadel.local"

    # ==========================================================================
    # Identity & Authentication
    # ==========================================================================

    user_file: str = "/db/user.json"

    jwt_public_key_file: str = "/db/jwt-public-key/jwt.pem"
    jwt_private_key_file: str = "/db/jwt-private-key/jwt.key"
    jwt_algorithm: str = "RS256"
    jwt_key_size: int = MIN_JWT_KEY_SIZE

    # When true, a fresh keypair is generated on every start and all
    # sessions from the previous run are dropped.
    rotate_keys_on_startup: bool = False

    password_hash_iterations: int = 100_000

    # ==========================================================================
    # Supervisor files
    # ==========================================================================

    signal_dir: str = "/signals"
    status_dir: str = "/statuses"
    version_file: str = "/info.json"

    # ==========================================================================
    # Connection details
    # ==========================================================================

    tor_hidden_service_dir: str = "/var/lib/tor"
    electrum_port: int = 50001
    bitcoin_p2p_port: int = 8333

    # ==========================================================================
    # Logging & Error Tracking
    # ==========================================================================

    log_dir: str = "./logs"
    log_level: str = "INFO"
    sentry_dsn: str = ""

    # ==========================================================================
    # Validation
    # ==========================================================================

    @field_validator("jwt_key_size")
    @classmethod
    def _key_size_is_adequate(cls, value: int) -> int:
        if value < MIN_JWT_KEY_SIZE:
            raise ValueError(f"jwt_key_size must be at least {MIN_JWT_KEY_SIZE} bits")
        return value

    @field_validator("jwt_algorithm")
    @classmethod
    def _algorithm_is_asymmetric(cls, value: str) -> str:
        if value not in ("RS256", "RS384", "RS512"):
            raise ValueError("jwt_algorithm must be an RSA signature algorithm")
        return value

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
