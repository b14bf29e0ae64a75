from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from loan_app.core.config import settings

# ---------------------
# SQLAlchemy engine / session / Base
# ---------------------
engine_kwargs = {
    "echo": settings.db_echo,
    "future": True,
}

if settings.is_sqlite:
    # SQLite connections are handed across the threadpool FastAPI runs sync routes in
    engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
    engine_kwargs.update(
        pool_pre_ping=True,  # drops dead connections automatically
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
    )

engine = create_engine(settings.database_url, **engine_kwargs)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
