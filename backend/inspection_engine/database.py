"""
PES Inspection Engine - Database Configuration
SQLAlchemy connection for the document-store adapter
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from .config import get_settings

DATABASE_URL = get_settings().database_url

# SQLite needs check_same_thread disabled when sessions cross FastAPI worker threads
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

# Create engine
engine = create_engine(DATABASE_URL, echo=False, connect_args=connect_args)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for ORM models
Base = declarative_base()


def get_db():
    """Dependency for FastAPI - yields database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Initialize database - create all tables."""
    from .models import db_models  # noqa: F401  (registers tables on Base)
    Base.metadata.create_all(bind=engine)
