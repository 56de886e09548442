"""
osdump: bulk export of an OpenSearch/Elasticsearch index to a local file.

Walks the index with search_after pagination in ascending ``_id`` order and
writes one JSON document per line, optionally Brotli-compressed. Network
retrieval and disk writes run on separate threads joined by a bounded queue.
"""

from osdump.core.config import ExportConfig
from osdump.core.errors import ExportError
from osdump.core.pipeline import ExportPipeline, ExportStats

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ExportConfig",
    "ExportError",
    "ExportPipeline",
    "ExportStats",
]
