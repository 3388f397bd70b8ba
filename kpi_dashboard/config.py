# kpi_dashboard/config.py
from pydantic_settings import BaseSettings
from typing import Literal, Optional
from pydantic import Field

class Settings(BaseSettings):
    # Remote spreadsheet backend. Empty → no HTTP transport.
    API_URL: Optional[str] = None
    # auto → API_URL, then host handle, then mock
    TRANSPORT: Literal["auto", "http", "host", "mock"] = Field("auto")

    MOCK_DELAY_SECONDS: float = Field(0.6)
    HOST_RPC_TIMEOUT_SECONDS: float = Field(30.0)
    # None → rely on the transport's own behaviour (unbounded)
    REQUEST_TIMEOUT_SECONDS: Optional[float] = None

    SECRET_KEY: str = Field("change-me-in-production")
    ALGORITHM: str = Field("HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(60 * 12)

    DATABASE_URL: str = Field("sqlite+aiosqlite:///./kpi_dashboard.db")
    SESSION_SLOT_KEY: str = Field("kpi_user")

    LOG_LEVEL: str = Field("INFO")

    model_config = {
        "env_file": ".env",
        "extra": "allow",
    }

    @property
    def effective_database_url(self) -> str:
        db_url = self.DATABASE_URL
        if db_url.startswith("sqlite://"):
            db_url = db_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        # Hosted Postgres hands out plain URLs; the async engine needs asyncpg
        elif db_url.startswith("postgres://"):
            db_url = db_url.replace("postgres://", "postgresql+asyncpg://", 1)
        elif db_url.startswith("postgresql://"):
            db_url = db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return db_url

settings = Settings()
