import threading
from collections.abc import Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from .config import PlacementConfig, load_config
from .models import Base


def build_engine(config: PlacementConfig) -> Engine:
    """Create the inventory engine. PostgreSQL only, unless SQLite is allowed."""
    url = config.database_url
    if not url.startswith("postgresql") and not (config.allow_sqlite and url.startswith("sqlite")):
        raise RuntimeError("DATABASE_URL must be a PostgreSQL URL (postgresql+psycopg://...)")
    try:
        return create_engine(url, pool_pre_ping=True)
    except ModuleNotFoundError as exc:
        raise RuntimeError("PostgreSQL driver missing. Install service dependencies (psycopg[binary]).") from exc


engine = build_engine(load_config())
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

_db_initialized = False
_init_lock = threading.Lock()


def init_db() -> None:
    global _db_initialized
    if _db_initialized:
        return

    with _init_lock:
        if _db_initialized:
            return
        Base.metadata.create_all(bind=engine)
        _db_initialized = True


def get_db() -> Generator[Session, None, None]:
    init_db()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
