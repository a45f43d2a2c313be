"""Engine and schema bootstrap utilities."""

import time
from sqlalchemy import Engine, create_engine, event
from storefront.models import Base
from storefront.logger import Logger

logger = Logger.get_logger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores FOREIGN KEY clauses, cascades included, unless enabled per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_database_engine(db_url: str, echo: bool = False) -> Engine:
    """Create an engine, enabling foreign key enforcement on SQLite."""
    engine = create_engine(db_url, echo=echo)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    logger.debug(f"Created engine for {engine.url.render_as_string(hide_password=True)}")
    return engine


def wait_for_postgres(engine: Engine, max_retries: int, delay: int) -> bool:
    """Wait for the database to be available."""
    for i in range(max_retries):
        try:
            with engine.connect():
                logger.info("Successfully connected to the database")
                return True
        except Exception:
            logger.info(
                f"Waiting for the database to be available... ({i+1}/{max_retries})"
            )
            time.sleep(delay)
    return False


def setup_database(engine: Engine) -> None:
    """Create database tables."""
    Base.metadata.create_all(engine)
    logger.info("Database tables created successfully")


def drop_database(engine: Engine) -> None:
    """Drop database tables."""
    Base.metadata.drop_all(engine)
    logger.info("Database tables dropped")
