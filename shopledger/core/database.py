"""
Shop Ledger Database Configuration
SQLAlchemy engine, session factory and declarative base
"""
from contextlib import contextmanager
from sqlalchemy import create_engine, MetaData, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.orm.exc import StaleDataError
from typing import Generator, Iterator

from .config import settings
from .exceptions import ShopLedgerException, ConflictError, InternalError
from .logging import get_logger

logger = get_logger("database")


def build_engine(database_url: str, echo: bool = False):
    """
    Create an engine for the given URL

    SQLite connections are shared across threads by the request threadpool,
    so same-thread checking is disabled there; server databases get a pool.
    """
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=echo,
        )

    return create_engine(
        database_url,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_recycle=3600,  # Recycle connections after 1 hour
        pool_pre_ping=True,  # Validate connections before use
        echo=echo,
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# Create SessionLocal class for database sessions
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

# Metadata with naming convention for constraints
Base = declarative_base(metadata=MetaData(naming_convention={
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}))


def get_db() -> Generator:
    """
    Dependency function to get database session

    Yields:
        Database session
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database session error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def ledger_transaction(db: Session, action: str) -> Iterator[Session]:
    """
    All-or-nothing unit of work

    Commits when the block completes. Any failure rolls the session back:
    application errors propagate unchanged, a version mismatch on a sale
    becomes ConflictError and anything else becomes InternalError.
    """
    try:
        yield db
        db.commit()
    except ShopLedgerException:
        db.rollback()
        raise
    except StaleDataError as e:
        db.rollback()
        logger.warning(f"{action}: concurrent update detected ({e})")
        raise ConflictError(f"{action}: the sale was modified concurrently, retry") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"{action} failed: {e}", exc_info=True)
        raise InternalError(f"{action} failed") from e
    except Exception as e:
        db.rollback()
        logger.error(f"{action} failed unexpectedly: {e}", exc_info=True)
        raise InternalError(f"{action} failed") from e


def init_db(bind=None):
    """
    Initialize database tables

    This function creates all tables defined in models
    """
    try:
        # Import all models to ensure they are registered with Base
        from shopledger.models import customer, sales, recovery, price_history, system  # noqa: F401

        Base.metadata.create_all(bind=bind or engine)
        logger.info("Database tables created successfully")

    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        raise


def check_db_connection() -> bool:
    """
    Check if database connection is working

    Returns:
        True if connection is successful, False otherwise
    """
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
