# WORKFLOW: Database engine construction, schema setup and connectivity checks.
# Used by: CLI scripts, upsert sink, company matching, tests
# Functions:
# 1. create_db_engine() - Build an engine for a database URL
# 2. init_db() - Create all tables on an engine
# 3. check_db_connection() - Health check for database connectivity
#
# Engine lifecycle:
# CLI start: create_db_engine(url) -> (optional) init_db -> pass engine to sink/matcher
# Library code never builds its own engine; callers inject it.

import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from db.models import Base

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create a database engine.

    Args:
        database_url: SQLAlchemy URL (postgresql://..., sqlite:///...)
        echo: Log emitted SQL

    Returns:
        Engine bound to the URL
    """
    connect_args = {}
    if database_url.startswith("postgresql"):
        connect_args["options"] = "-c timezone=utc"

    engine = create_engine(
        database_url,
        pool_pre_ping=True,
        echo=echo,
        connect_args=connect_args,
    )
    logger.info(f"Created database engine for {engine.url.render_as_string(hide_password=True)}")
    return engine


def init_db(engine: Engine) -> None:
    """
    Create all tables that do not exist yet.
    """
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")

    except SQLAlchemyError as e:
        logger.error(f"Database initialization failed: {e}")
        raise


def check_db_connection(engine: Engine) -> bool:
    """
    Check if database connection is working.
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database connection check failed: {e}")
        return False
