from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, declarative_base
from app.core.config import settings


def _connect_args(url: str) -> dict:
    # SQLite connections are shared between the request thread pool
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.db_url,
    pool_pre_ping=True,
    future=True,
    connect_args=_connect_args(settings.db_url),
)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True,
)

Base = declarative_base()


def check_connection() -> None:
    """
    Simple connection attempt to validate credentials/network.
    Raises if it fails.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
