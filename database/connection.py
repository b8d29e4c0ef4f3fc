"""
Database connection management for the MarklerApp CRM.
Handles SQLAlchemy engine creation, session management, and connection verification.
"""

import os
import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import QueuePool, StaticPool

logger = logging.getLogger(__name__)

# SQLAlchemy Base for model declarations
Base = declarative_base()

# Engine and SessionLocal are created lazily or by configure_database()
engine = None
SessionLocal = None
DATABASE_URL = None


def normalize_database_url(url):
    """Handle the postgres:// vs postgresql:// URL format used by some hosts."""
    if url and url.startswith('postgres://'):
        return url.replace('postgres://', 'postgresql://', 1)
    return url


def _build_engine(url):
    if url.startswith('sqlite'):
        # In-memory SQLite must share one connection across threads
        eng = create_engine(
            url,
            connect_args={'check_same_thread': False},
            poolclass=StaticPool,
            echo=False
        )

        @event.listens_for(eng, 'connect')
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute('PRAGMA foreign_keys=ON')
            cursor.close()

        return eng

    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,  # Verify connections before using
        pool_recycle=300,    # Recycle connections after 5 minutes
        echo=False
    )


def configure_database(url):
    """
    (Re)bind the module-level engine and session factory to a database URL.
    Called by the app factory with the configured DATABASE_URL.
    """
    global engine, SessionLocal, DATABASE_URL

    url = normalize_database_url(url)
    if not url:
        raise RuntimeError(
            "DATABASE_URL not configured. "
            "Please set the DATABASE_URL environment variable."
        )

    if engine is not None:
        engine.dispose()

    DATABASE_URL = url
    engine = _build_engine(url)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine,
                                expire_on_commit=False)
    logger.info(f"Database engine created for {engine.url.get_backend_name()}")
    return engine


def get_engine():
    """Get or create the SQLAlchemy engine."""
    if engine is None:
        configure_database(os.environ.get('DATABASE_URL'))
    return engine


def get_session_factory():
    """Get or create the session factory."""
    if SessionLocal is None:
        get_engine()
    return SessionLocal


@contextmanager
def get_db_session():
    """
    Context manager for getting a database session.
    Commits on success, rolls back on any exception.

    Example:
        with get_db_session() as db:
            clients = db.query(Client).all()
    """
    session_factory = get_session_factory()
    db = session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def check_db_connection():
    """
    Verify that the database connection is working.
    Returns True if connection is successful, raises exception otherwise.
    """
    try:
        eng = get_engine()
        with eng.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        raise RuntimeError(f"Cannot connect to database: {e}")


def init_db():
    """
    Create all tables. Used for SQLite/test databases; PostgreSQL deployments
    run the Alembic migrations instead.
    """
    from database import models  # noqa: F401

    Base.metadata.create_all(bind=get_engine())
    logger.info("Database tables created/verified")


def drop_db():
    """Drop all tables (tests only)."""
    from database import models  # noqa: F401

    Base.metadata.drop_all(bind=get_engine())
