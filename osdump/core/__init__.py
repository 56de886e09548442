"""
osdump.core - Export pipeline.

This module contains:
- Query construction for search_after pagination
- The paginator (producer) and sink writer (consumer)
- The bounded work queue joining them
- The orchestrator running one export
"""

from osdump.core.config import ExportConfig
from osdump.core.errors import (
    ConfigurationError,
    ExportError,
    NothingToDumpError,
    ProtocolError,
    QueueAbortedError,
    QueueClosedError,
    SinkError,
    TransportError,
)
from osdump.core.paginator import PaginationState, Paginator
from osdump.core.pipeline import ExportPipeline, ExportStats
from osdump.core.query import build_query
from osdump.core.sink import SinkResult, SinkWriter
from osdump.core.work_queue import END_OF_STREAM, WorkQueue

__all__ = [
    "ExportConfig",
    "ConfigurationError",
    "ExportError",
    "NothingToDumpError",
    "ProtocolError",
    "QueueAbortedError",
    "QueueClosedError",
    "SinkError",
    "TransportError",
    "PaginationState",
    "Paginator",
    "ExportPipeline",
    "ExportStats",
    "build_query",
    "SinkResult",
    "SinkWriter",
    "END_OF_STREAM",
    "WorkQueue",
]
