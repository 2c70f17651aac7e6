"""Declarative base and shared column mixins for dindex tables.

All datetimes are stored as naive UTC (see :mod:`dindex.core.timestamps`).
Timestamps are filled in by Python rather than by the database, because
``CURRENT_TIMESTAMP`` on SQLite and ``now()`` on PostgreSQL disagree on
precision and time zone. The progress read-out compares ``updated_at``
against a Python-computed window, so both sides must agree.

Constraint and index names follow a fixed convention so that migrations
generated against PostgreSQL and SQLite name things identically.
"""

from __future__ import annotations

import datetime

from sqlalchemy import JSON, DateTime, Float, Integer, MetaData, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from dindex.core.timestamps import db_utc_now

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class DIndexBase(DeclarativeBase):
    """Shared declarative base for every dindex table."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    type_annotation_map = {
        str: Text,
        int: Integer,
        float: Float,
        datetime.datetime: DateTime,
        dict: JSON,
        list: JSON,
    }


class TimestampMixin:
    """``created_at`` / ``updated_at`` in naive UTC, maintained on write."""

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, nullable=False, default=db_utc_now
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, nullable=False, default=db_utc_now, onupdate=db_utc_now
    )
