"""search_after paginator feeding the work queue.

The paginator is the producer half of the export pipeline. It walks the
index page by page in ascending ``_id`` order, strips the ``sort``
annotation from each hit and hands the serialized record to the queue.
An empty page is the only end-of-data signal.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol

from ..utils.logging import get_logger
from .errors import ProtocolError
from .query import build_query
from .work_queue import WorkQueue


class SearchTransport(Protocol):
    """Anything that can answer a paginated search request."""

    def search(self, query: Dict[str, Any]) -> Dict[str, Any]:
        ...


@dataclass
class PaginationState:
    """Mutable pagination state, owned by a single Paginator.

    Attributes:
        window_size: Documents requested per page.
        cursor: Sort value of the last emitted document (None before the first page).
        counter: Records handed to the queue so far.
        pages: Search requests issued so far, including the final empty page.
    """

    window_size: int
    cursor: Optional[str] = None
    counter: int = 0
    pages: int = 0


def serialize_record(hit: Dict[str, Any]) -> bytes:
    """Serialize one hit as compact UTF-8 JSON, preserving key order."""
    return json.dumps(hit, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def extract_cursor(hit: Dict[str, Any]) -> Optional[str]:
    """Return the first sort value of a hit if it is a non-empty string."""
    sort = hit.get("sort")
    if isinstance(sort, list) and sort and isinstance(sort[0], str) and sort[0]:
        return sort[0]
    return None


class Paginator:
    """Drives search_after pagination to completion.

    Attributes:
        state: Pagination state (cursor and progress counter).
    """

    def __init__(
        self,
        client: SearchTransport,
        queue: WorkQueue[bytes],
        state: PaginationState,
        on_page: Optional[Callable[[int], None]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """Initialize the paginator.

        Args:
            client: Transport performing the search exchange.
            queue: Queue that receives serialized records.
            state: Pagination state; its cursor is advanced in place.
            on_page: Optional callback receiving the record count of each
                non-empty page.
            logger: Optional logger instance.
        """
        self._client = client
        self._queue = queue
        self.state = state
        self._on_page = on_page
        self._logger = logger or get_logger("core.paginator")

    def fetch_page(self) -> List[Dict[str, Any]]:
        """Request the page following the current cursor.

        Returns:
            The hits array of the response (empty at the end of the index).

        Raises:
            TransportError: On connection failure or non-200 status.
            ProtocolError: If the response lacks the ``hits`` object.
        """
        query = build_query(self.state.window_size, self.state.cursor)
        document = self._client.search(query)
        self.state.pages += 1

        # Sanity check
        if "hits" not in document:
            raise ProtocolError(f"JSON result looks incorrect: {document!r:.200}", "search")
        hits = document["hits"]
        if not isinstance(hits, dict):
            raise ProtocolError(f"'hits' is not an object: {hits!r:.200}", "search")

        results = hits.get("hits") or []
        if not isinstance(results, list):
            raise ProtocolError(f"'hits.hits' is not an array: {results!r:.200}", "search")
        return results

    def emit(self, hits: List[Dict[str, Any]]) -> int:
        """Advance the cursor over ``hits`` and enqueue each record in order.

        Returns:
            Number of records enqueued.
        """
        for hit in hits:
            if not isinstance(hit, dict):
                raise ProtocolError(f"Hit is not an object: {hit!r:.200}", "search")
            cursor = extract_cursor(hit)
            if cursor is not None:
                self.state.cursor = cursor
            hit.pop("sort", None)
            self.state.counter += 1
            self._queue.put(serialize_record(hit))
        return len(hits)

    def run(self) -> int:
        """Fetch and emit pages until an empty page, then close the queue.

        Returns:
            Total number of records enqueued.
        """
        while True:
            hits = self.fetch_page()
            if not hits:
                self._logger.debug("Did not get any results, bailing out")
                break

            emitted = self.emit(hits)
            self._logger.debug(
                f"Page {self.state.pages}: {emitted} record(s), cursor={self.state.cursor}"
            )
            if self._on_page is not None:
                self._on_page(emitted)

        self._queue.close()
        self._logger.debug(f"Producer done after {self.state.pages} page(s)")
        return self.state.counter
