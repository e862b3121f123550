import logging
from pathlib import Path

from alembic.config import Config
from sqlalchemy import Connection, create_engine
from sqlalchemy.engine import Engine, make_url

from alembic import command
from contas.settings import settings

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent

_engine: Engine | None = None
_connection: Connection | None = None


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        url = make_url(settings.db_url)
        if url.get_backend_name() == "sqlite":
            # The store lock may commit from a thread other than the one that connected.
            _engine = create_engine(url, connect_args={"check_same_thread": False})
        else:
            _engine = create_engine(url, pool_pre_ping=True, pool_recycle=1800)
        logger.info("Database engine created: backend=%s", url.get_backend_name())
    return _engine


def get_connection() -> Connection:
    """Process-wide connection shared by every repository."""
    global _connection
    if _connection is None:
        _connection = get_engine().connect()
        logger.debug("Shared DB connection opened")
    return _connection


def _get_alembic_config() -> Config:
    ini_path = PROJECT_ROOT / "alembic.ini"
    if not ini_path.exists():
        ini_path = Path.cwd() / "alembic.ini"
    return Config(str(ini_path))


def initialize_db() -> None:
    """Bring the schema to the latest Alembic revision."""
    logger.info("Running Alembic migrations")
    command.upgrade(_get_alembic_config(), "head")
    logger.info("Migrations complete")
