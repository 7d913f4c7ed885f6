"""
Database connection and setup
SQLite (or any SQLAlchemy URL) backing the durable cache tier
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from app.models import Base


def make_engine(database_url: str) -> Engine:
    """
    Create an engine for the given URL
    SQLite connections are shared across threads (sweeper + request handlers)
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False  # Needed for SQLite
    return create_engine(database_url, connect_args=connect_args, echo=False)


def init_db(engine: Engine):
    """
    Initialize database - create all tables
    Safe to call multiple times (won't recreate existing tables)
    """
    Base.metadata.create_all(bind=engine)


def make_session_factory(database_url: str) -> sessionmaker:
    """Create tables if needed and return a session factory bound to them."""
    engine = make_engine(database_url)
    init_db(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
