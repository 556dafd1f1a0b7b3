from urllib.parse import quote_plus

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import Settings, settings


def database_url(cfg: Settings) -> str:
    if cfg.use_sqlite:
        return f"sqlite:///{cfg.sqlite_path}"
    # Passwords may hold URL delimiters such as @ or /
    password = quote_plus(cfg.mysql_password)
    return (
        f"mysql+pymysql://{cfg.mysql_user}:{password}"
        f"@{cfg.mysql_host}:{cfg.mysql_port}/{cfg.mysql_db}?charset=utf8mb4"
    )


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str) -> Engine:
    """Engine for ``url``; SQLite connections get ON DELETE CASCADE enforced."""
    if make_url(url).get_backend_name() == "sqlite":
        engine = create_engine(url, connect_args={"check_same_thread": False})
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine
    return create_engine(url, pool_pre_ping=True, pool_recycle=3600)


DATABASE_URL = database_url(settings)
engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
