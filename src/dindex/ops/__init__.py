"""
Transport-agnostic operations.

Every function takes an :class:`~dindex.ops.context.OperationContext` and
returns an :class:`~dindex.ops.result.OperationResult`. The FastAPI
routers and the Typer commands are thin adapters over this layer.
"""

from dindex.ops.context import OperationContext
from dindex.ops.result import OperationError, OperationResult

__all__ = ["OperationContext", "OperationResult", "OperationError"]
