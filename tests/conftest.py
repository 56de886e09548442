"""Shared pytest fixtures for osdump tests."""

import copy
import tempfile
import threading
import time
from pathlib import Path

import pytest

from osdump.core.config import ExportConfig
from osdump.core.errors import TransportError


def make_documents(ids):
    """Build search hits for the given document ids.

    Args:
        ids: Iterable of document identifiers.

    Returns:
        List of hit dictionaries without sort annotations.
    """
    return [
        {
            "_index": "graylog_0",
            "_id": doc_id,
            "_score": None,
            "_source": {"message": f"message {doc_id}", "level": 6, "tags": ["a", "b"]},
        }
        for doc_id in ids
    ]


class FakeSearchService:
    """In-memory stand-in for the search service's _count and _search endpoints.

    Honors ``size`` and ``search_after`` on ``_id`` ascending, annotates each
    hit with ``sort``, and records every query it receives.
    """

    def __init__(self, documents, delay=0.0, fail_on_page=None, count_override=None):
        self.documents = sorted(documents, key=lambda d: d["_id"])
        self.delay = delay
        self.fail_on_page = fail_on_page
        self.count_override = count_override
        self.queries = []
        self.count_calls = 0
        self.closed = False
        self._lock = threading.Lock()

    def count(self):
        self.count_calls += 1
        if self.count_override is not None:
            return self.count_override
        return len(self.documents)

    def search(self, query):
        with self._lock:
            self.queries.append(copy.deepcopy(query))
            page_number = len(self.queries)

        if self.delay:
            time.sleep(self.delay)
        if self.fail_on_page is not None and page_number == self.fail_on_page:
            raise TransportError("Got invalid HTTP status code 503", "search", status_code=503)

        after = query.get("search_after", [None])[0]
        remaining = [d for d in self.documents if after is None or d["_id"] > after]
        page = []
        for doc in remaining[: query["size"]]:
            hit = copy.deepcopy(doc)
            hit["sort"] = [doc["_id"]]
            page.append(hit)
        return {"took": 1, "timed_out": False, "hits": {"total": {"value": 0}, "hits": page}}

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests.

    Yields:
        Path to the temporary directory that is automatically
        cleaned up after the test.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_documents():
    """Five documents with ids a..e."""
    return make_documents(["a", "b", "c", "d", "e"])


@pytest.fixture
def fake_service(sample_documents):
    """Search service holding the five sample documents."""
    return FakeSearchService(sample_documents)


@pytest.fixture
def output_path(temp_dir):
    """Path of a dump file that does not exist yet."""
    return temp_dir / "dump.json"


@pytest.fixture
def export_config(output_path):
    """Plain-http configuration with a small window and queue.

    Returns:
        ExportConfig writing to ``output_path``.
    """
    return ExportConfig(
        base_url="http://localhost:9200",
        user="graylog",
        password="secret-password",
        ca_path=None,
        index="graylog_0",
        window_size=2,
        output_path=output_path,
        queue_capacity=10,
    )
