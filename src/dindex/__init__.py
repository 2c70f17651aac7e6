"""
dindex - FAIR-score job queue, result reconciliation and read-path caching
for a research-dataset catalog.

- dindex.core: primitives (errors, logging, settings, kv store, cache,
  telemetry, rate limiting, queue, reconciler, ORM)
- dindex.ops: transport-agnostic operations
- dindex.api: FastAPI application
- dindex.cli: Typer command line
"""

__version__ = "0.3.0"
