# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Core configuration, all env-driven.
Every variable carries the ONCALL_ prefix; a double underscore separates
a section from its key (ONCALL_DATABASE__HOST).
"""

import os

PREFIX = "ONCALL_"


def _env(key: str, default: str) -> str:
    return os.getenv(f"{PREFIX}{key}", default)


class Settings:
    """Application settings loaded from environment variables."""

    SERVICE_NAME: str = _env("SERVICE_NAME", "oncall-schedule")
    SERVICE_VERSION: str = _env("SERVICE_VERSION", "1.0.0")

    SERVER_ADDRESS: str = _env("SERVER__ADDRESS", "0.0.0.0")
    SERVER_PORT: int = int(_env("SERVER__PORT", "1373"))

    USE_DATABASE: bool = _env("USE_DATABASE", "false").lower() == "true"

    DATABASE_URL: str = _env("DATABASE__URL", "")
    DATABASE_HOST: str = _env("DATABASE__HOST", "localhost")
    DATABASE_PORT: int = int(_env("DATABASE__PORT", "5432"))
    DATABASE_USER: str = _env("DATABASE__USER", "oncall")
    DATABASE_PASSWORD: str = _env("DATABASE__PASSWORD", "")
    DATABASE_NAME: str = _env("DATABASE__DATABASE", "oncall")
    DATABASE_SSL_MODE: str = _env("DATABASE__SSL_MODE", "disable")
    POOL_SIZE: int = int(_env("DATABASE__MAX_CONNECTIONS", "10"))
    MAX_OVERFLOW: int = int(_env("DATABASE__MAX_OVERFLOW", "5"))
    POOL_RECYCLE: int = int(_env("DATABASE__POOL_RECYCLE", "300"))
    CREATE_SCHEMA: bool = _env("DATABASE__CREATE_SCHEMA", "false").lower() == "true"

    CORS_ORIGINS: list[str] = _env("CORS_ORIGINS", "*").split(",")
    LOG_LEVEL: str = _env("LOG_LEVEL", "INFO").upper()

    @property
    def database_url(self) -> str:
        """Explicit URL wins; otherwise assemble one from the parts."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        credentials = self.DATABASE_USER
        if self.DATABASE_PASSWORD:
            credentials = f"{credentials}:{self.DATABASE_PASSWORD}"
        return (
            f"postgresql://{credentials}@{self.DATABASE_HOST}:{self.DATABASE_PORT}"
            f"/{self.DATABASE_NAME}?sslmode={self.DATABASE_SSL_MODE}"
        )


settings = Settings()
