import logging

from sqlalchemy import create_engine, text, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from .config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def _quote_ident(ident: str) -> str:
    # Safe-ish quoting for Postgres identifiers (schema/table)
    return '"' + ident.replace('"', '""') + '"'


def _normalize_url(url: str) -> str:
    # SQLAlchemy only accepts the "postgresql" scheme
    if url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://"):]
    return url


def _search_path_hook(db_schema: str):
    schema = _quote_ident(db_schema)

    def _set_search_path(dbapi_conn, _):
        # Ensures every new connection uses the schema
        cur = dbapi_conn.cursor()
        cur.execute(f"SET search_path TO {schema}")
        cur.close()

    return _set_search_path


def create_db_engine(database_url: str, db_schema: str | None = None) -> Engine:
    engine = create_engine(_normalize_url(database_url), pool_pre_ping=True)

    if db_schema and engine.dialect.name == "postgresql":
        event.listen(engine, "connect", _search_path_hook(db_schema))

    return engine


def ping(engine: Engine) -> None:
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))


def open_engine(settings: Settings) -> Engine:
    """
    Create the engine and make sure the store answers.

    Any failure here is fatal for the process: it is logged and re-raised so
    startup aborts instead of serving traffic without a database.
    """
    try:
        engine = create_db_engine(settings.database_url, settings.db_schema)
    except Exception:
        logger.critical("Failed to connect to database", exc_info=True)
        raise

    try:
        ping(engine)
    except Exception:
        logger.critical("Database is unreachable", exc_info=True)
        engine.dispose()
        raise

    logger.info("Database connection established.")
    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False)
