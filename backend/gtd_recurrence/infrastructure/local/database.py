"""
SQLite database configuration and ORM models.

This module defines the SQLAlchemy ORM model for tasks and database
initialization.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Integer, String, Text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from gtd_recurrence.core.config import get_settings


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


# ===========================================
# ORM Models
# ===========================================


class TaskORM(Base):
    """Task ORM model (plain tasks, series templates and instances)."""

    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(255), nullable=False, index=True)
    text = Column(Text, nullable=False)  # ciphertext
    comment = Column(Text, nullable=True)  # ciphertext
    category_id = Column(String(64), nullable=True)
    project_id = Column(String(64), nullable=True)
    priority_id = Column(String(64), nullable=True)
    context_id = Column(String(64), nullable=True)
    gtd_status = Column(String(20), default="inbox", index=True)
    completed = Column(Boolean, default=False)
    due_date = Column(Date, nullable=True)

    # Recurrence
    is_template = Column(Boolean, default=False, index=True)
    template_id = Column(String(36), nullable=True, index=True)
    recurrence_rule = Column(JSON, nullable=True)
    end_type = Column(String(20), nullable=True)
    end_date = Column(Date, nullable=True)
    end_count = Column(Integer, nullable=True)
    occurrence_count = Column(Integer, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# ===========================================
# Database Session Management
# ===========================================


def get_engine(database_url: str | None = None):
    """Get async engine instance."""
    settings = get_settings()
    return create_async_engine(database_url or settings.DATABASE_URL, echo=settings.DEBUG)


def get_session_factory(engine=None) -> async_sessionmaker[AsyncSession]:
    """Get async session factory."""
    return async_sessionmaker(engine or get_engine(), class_=AsyncSession, expire_on_commit=False)


async def init_db(engine=None):
    """Initialize database tables."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
