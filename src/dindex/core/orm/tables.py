"""SQLAlchemy 2.0 ORM table definitions for dindex.

Manifesto:
    The job queue, the score store and the derived-index tables are the
    only durable state the scoring core owns. Each table below has a
    single writer: importers write ``dataset``/``citation``/``mention``,
    the seeder writes ``fuji_job``, the reconciler writes ``fuji_score``
    and the offline index builders write ``d_index``/``s_index``.

Column conventions:

* ``*_at`` / ``*_date`` / ``created`` columns -> ``DateTime``
* ``authors`` / ``subjects`` -> ``JSON``
* ``ForeignKey`` declared with ``ON DELETE CASCADE`` so truncating
  datasets never leaves orphaned jobs or scores

Tags:
    dindex, orm, sqlalchemy, tables, job-queue, fair-score

Doc-Types:
    api-reference, data-model

Usage::

    from dindex.core.orm import DIndexBase
    from dindex.core.orm.session import create_dindex_engine

    engine = create_dindex_engine("sqlite:///dindex.db")
    DIndexBase.metadata.create_all(engine)
"""

from __future__ import annotations

import datetime

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from dindex.core.orm.base import DIndexBase, TimestampMixin

_NOW = func.now()


# =============================================================================
# Catalog
# =============================================================================


class DatasetTable(TimestampMixin, DIndexBase):
    __tablename__ = "dataset"
    __table_args__ = (
        UniqueConstraint("identifier_type", "identifier", name="uq_dataset_identifier"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    identifier: Mapped[str] = mapped_column(Text, nullable=False)
    identifier_type: Mapped[str] = mapped_column(Text, nullable=False, default="doi")
    title: Mapped[str | None] = mapped_column(Text)
    description: Mapped[str | None] = mapped_column(Text)
    publisher: Mapped[str | None] = mapped_column(Text)
    authors: Mapped[list | None] = mapped_column(JSON, default=list)
    subjects: Mapped[list | None] = mapped_column(JSON, default=list)
    published_at: Mapped[datetime.datetime | None] = mapped_column(DateTime)


class CitationTable(DIndexBase):
    __tablename__ = "citation"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    dataset_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("dataset.id", ondelete="CASCADE"), nullable=False, index=True
    )
    cited_date: Mapped[datetime.datetime | None] = mapped_column(DateTime)
    citation_weight: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)


class MentionTable(DIndexBase):
    __tablename__ = "mention"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    dataset_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("dataset.id", ondelete="CASCADE"), nullable=False, index=True
    )
    mentioned_date: Mapped[datetime.datetime | None] = mapped_column(DateTime)
    mention_weight: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)


# =============================================================================
# Job queue and scores
# =============================================================================


class FujiJobTable(DIndexBase):
    """A pending FAIR-score computation. At most one per dataset."""

    __tablename__ = "fuji_job"

    dataset_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("dataset.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, nullable=False, server_default=_NOW
    )


class FujiScoreTable(TimestampMixin, DIndexBase):
    """Accepted FAIR score. Only ever replaced by a strictly higher score."""

    __tablename__ = "fuji_score"

    dataset_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("dataset.id", ondelete="CASCADE"), primary_key=True
    )
    score: Mapped[float] = mapped_column(Float, nullable=False)
    evaluation_date: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False)
    metric_version: Mapped[str] = mapped_column(Text, nullable=False)
    software_version: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (Index("ix_fuji_score_updated_at", "updated_at"),)


# =============================================================================
# Derived indices (append-only, read latest-per-key)
# =============================================================================


class DIndexTable(DIndexBase):
    __tablename__ = "d_index"
    __table_args__ = (Index("ix_d_index_dataset_created", "dataset_id", "created"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    dataset_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("dataset.id", ondelete="CASCADE"), nullable=False
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False)
    created: Mapped[datetime.datetime] = mapped_column(
        DateTime, nullable=False, server_default=_NOW
    )


class SIndexTable(DIndexBase):
    """Precomputed S-Index per organisation or user and year."""

    __tablename__ = "s_index"
    __table_args__ = (
        Index("ix_s_index_entity", "entity_type", "entity_id", "year"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entity_type: Mapped[str] = mapped_column(Text, nullable=False)  # organization | user
    entity_id: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str | None] = mapped_column(Text)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False)
    created: Mapped[datetime.datetime] = mapped_column(
        DateTime, nullable=False, server_default=_NOW
    )


ALL_TABLES = [
    DatasetTable,
    CitationTable,
    MentionTable,
    FujiJobTable,
    FujiScoreTable,
    DIndexTable,
    SIndexTable,
]
