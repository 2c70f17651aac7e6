"""SQLAlchemy ORM layer for dindex.

Tags:
    dindex, orm, sqlalchemy

Doc-Types:
    api-reference
"""

from dindex.core.orm.base import DIndexBase, TimestampMixin
from dindex.core.orm.session import (
    DIndexSession,
    create_dindex_engine,
    drop_schema,
    init_schema,
    session_factory,
    session_scope,
)
from dindex.core.orm.tables import (
    CitationTable,
    DatasetTable,
    DIndexTable,
    FujiJobTable,
    FujiScoreTable,
    MentionTable,
    SIndexTable,
)

__all__ = [
    "DIndexBase",
    "TimestampMixin",
    "DIndexSession",
    "create_dindex_engine",
    "session_factory",
    "session_scope",
    "init_schema",
    "drop_schema",
    "DatasetTable",
    "CitationTable",
    "MentionTable",
    "FujiJobTable",
    "FujiScoreTable",
    "DIndexTable",
    "SIndexTable",
]
