"""
osdump.transport - HTTP access to the search service.
"""

from osdump.transport.search_client import SearchClient, build_session

__all__ = [
    "SearchClient",
    "build_session",
]
