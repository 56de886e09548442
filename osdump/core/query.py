"""Pagination query documents for search_after traversal."""

from __future__ import annotations

from typing import Any, Dict, Optional

from .errors import ConfigurationError

# Total order on a field that is unique per document, so pages never
# skip or repeat documents.
SORT_CLAUSE = [{"_id": "asc"}]


def build_query(window_size: int, cursor: Optional[str] = None) -> Dict[str, Any]:
    """Build one page request.

    Args:
        window_size: Maximum number of documents per page.
        cursor: Sort value of the last document already seen. None (or
            empty) means the start of the index.

    Returns:
        Query document ready to be serialized by the transport.

    Raises:
        ConfigurationError: If window_size is not a positive integer.
    """
    if isinstance(window_size, bool) or not isinstance(window_size, int) or window_size < 1:
        raise ConfigurationError(f"Window size must be a positive integer, got {window_size!r}")

    query: Dict[str, Any] = {
        "size": window_size,
        "query": {"bool": {"must": {"match_all": {}}}},
    }
    if cursor:
        query["search_after"] = [cursor]
    query["sort"] = [dict(clause) for clause in SORT_CLAUSE]
    return query
