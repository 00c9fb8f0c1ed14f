"""
Base models and mixins for SQLAlchemy ORM.

Provides the declarative base, mixins for UUID keys and timestamps,
and common serialization helpers for all database models.
"""

from datetime import datetime, timezone
from typing import Any
import uuid

from sqlalchemy import Column, String
from sqlalchemy.orm import declarative_base


# SQLAlchemy declarative base for all ORM models
Base = declarative_base()


def utc_now_iso() -> str:
    """
    Get current UTC timestamp in ISO format.

    Returns:
        ISO format timestamp string (e.g., "2025-01-15T10:30:45.123456+00:00")
    """
    return datetime.now(timezone.utc).isoformat()


def new_uuid() -> str:
    return str(uuid.uuid4())


class TimestampMixin:
    """
    Mixin that adds created_at and updated_at timestamp columns.

    Timestamps are ISO 8601 UTC strings set by the application, so rows
    read the same on PostgreSQL and SQLite.

    Attributes:
        created_at: Timestamp when record was created (immutable)
        updated_at: Timestamp when record was last updated (auto-updated)
    """

    created_at = Column(
        String,
        nullable=False,
        default=utc_now_iso,
        doc="UTC timestamp when record was created"
    )

    updated_at = Column(
        String,
        nullable=False,
        default=utc_now_iso,
        onupdate=utc_now_iso,
        doc="UTC timestamp when record was last updated"
    )


class UUIDMixin:
    """
    Mixin that adds a UUID primary key column.

    Rows mirrored from the auth provider (users) set the id explicitly
    to the auth user id; everything else gets a fresh uuid4.
    """

    id = Column(
        String,
        primary_key=True,
        default=new_uuid,
        doc="UUID primary key"
    )


class ModelMixin:
    """
    Mixin providing common model utilities.
    """

    def to_dict(self) -> dict[str, Any]:
        """
        Convert model instance to dictionary.

        Returns:
            Dictionary with all column values (relationships excluded)
        """
        return {
            column.name: getattr(self, column.name)
            for column in self.__table__.columns
        }

    def __repr__(self) -> str:
        attrs = ", ".join(
            f"{key}={repr(value)}"
            for key, value in self.to_dict().items()
            if key in ["id", "name", "vendor_name", "order_id", "status"]
        )
        return f"{self.__class__.__name__}({attrs})"
