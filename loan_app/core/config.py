import os
from dataclasses import dataclass, field
from pathlib import Path
import sys

from dotenv import load_dotenv

# .env lives next to main.py (dev) or next to the frozen executable
if getattr(sys, "frozen", False):
    BASE_DIR = Path(sys.executable).parent
else:
    BASE_DIR = Path(__file__).resolve().parents[2]

load_dotenv(dotenv_path=BASE_DIR / ".env")

DEFAULT_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


def _postgres_url() -> str:
    host = os.getenv("DB_HOST", "127.0.0.1")
    port = os.getenv("DB_PORT") or "5432"
    # "None" sneaks in from badly written .env files
    if str(port).lower() == "none":
        port = "5432"
    name = os.getenv("DB_NAME", "loan_app")
    user = os.getenv("DB_USER", "postgres")
    password = os.getenv("DB_PASS", "postgres")
    return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{name}"


@dataclass
class Settings:
    """Runtime configuration for the loan backend."""

    database_url: str = field(default_factory=_postgres_url)
    db_echo: bool = False
    db_pool_size: int = 5
    db_max_overflow: int = 10
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_ORIGINS))
    log_level: str = "INFO"
    log_format: str = "standard"
    host: str = "0.0.0.0"
    port: int = 5001
    default_tenure_months: int = 12

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables."""
        origins = os.getenv("FRONTEND_URL")

        return cls(
            database_url=os.getenv("DATABASE_URL") or _postgres_url(),
            db_echo=os.getenv("DB_ECHO", "false").lower() == "true",
            db_pool_size=int(os.getenv("DB_POOL_SIZE", "5")),
            db_max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "10")),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()]
            if origins
            else list(DEFAULT_ORIGINS),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "5001")),
            default_tenure_months=int(os.getenv("DEFAULT_TENURE_MONTHS", "12")),
        )


settings = Settings.from_env()
