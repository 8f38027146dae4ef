"""Generate database sessions"""

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from pairchess.core.config import Settings
from pairchess.db.schema import Base
from pairchess.db.sql_repository import SQLSessionStore


def make_engine(settings: Settings) -> Engine:
    engine = create_engine(settings.database_url, echo=settings.echo_sql)
    # Ensure all tables are created
    Base.metadata.create_all(bind=engine)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def build_store(settings: Settings) -> SQLSessionStore:
    """Session Store wired up from the settings"""
    return SQLSessionStore(
        make_session_factory(make_engine(settings)),
        retries=settings.store_retries,
        retry_delay=settings.store_retry_delay,
    )
