"""HTTP client for the search service's _count and _search endpoints.

This module provides the SearchClient class, which performs one
request/response exchange per call against an OpenSearch/Elasticsearch
compatible service using HTTP Basic authentication. It never retries:
any failure is raised to the caller.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import requests

from ..core.config import ExportConfig
from ..core.errors import ConfigurationError, ProtocolError, TransportError
from ..utils.logging import get_logger, mask_sensitive_data

COUNT_PATH = "{base}/{index}/_count"
SEARCH_PATH = "{base}/{index}/_search?request_cache=true"

# Response bodies quoted in error messages are cut to this many characters
MAX_ERROR_BODY = 500


def build_session(config: ExportConfig) -> requests.Session:
    """Build an authenticated session, verifying TLS against the configured CA.

    Args:
        config: Export configuration.

    Returns:
        Session with Basic auth and JSON content type preset.

    Raises:
        ConfigurationError: If TLS is required and the CA file is missing.
    """
    logger = get_logger("transport")
    session = requests.Session()
    session.auth = (config.user, config.password)
    session.headers.update(
        {
            "Content-Type": "application/json",
            "User-Agent": "osdump/1.0",
        }
    )

    if config.use_tls:
        if config.ca_path is None or not config.ca_path.is_file():
            session.close()
            raise ConfigurationError(f"CA certificate not found: {config.ca_path}")
        session.verify = str(config.ca_path)
        logger.debug(f"Built https session (CA: {config.ca_path})")
    else:
        logger.debug("Built http session")

    logger.debug(
        f"Session user: {config.user}, password: {mask_sensitive_data(config.password)}"
    )
    return session


class SearchClient:
    """Issues count and paginated search requests against one index.

    Attributes:
        base_url: Service base URL without trailing slash.
        index: Target index name.
        timeout: Optional request timeout in seconds (None waits forever).
    """

    def __init__(
        self,
        session: requests.Session,
        base_url: str,
        index: str,
        timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._session = session
        self.base_url = base_url.rstrip("/")
        self.index = index
        self.timeout = timeout
        self._logger = logger or get_logger("transport")

    @classmethod
    def from_config(cls, config: ExportConfig) -> SearchClient:
        """Create a client with a freshly built session.

        Args:
            config: Export configuration.

        Returns:
            SearchClient bound to ``config.index``.
        """
        return cls(build_session(config), config.base, config.index)

    @property
    def count_url(self) -> str:
        return COUNT_PATH.format(base=self.base_url, index=self.index)

    @property
    def search_url(self) -> str:
        return SEARCH_PATH.format(base=self.base_url, index=self.index)

    def count(self) -> int:
        """Return the number of documents in the index.

        A response without a ``count`` field counts as zero.

        Raises:
            TransportError: On connection failure or non-200 status.
            ProtocolError: If the body is not a JSON object.
        """
        document = self._get(self.count_url, None, phase="count")
        count = document.get("count", 0)
        if isinstance(count, bool) or not isinstance(count, int):
            raise ProtocolError(f"Count response has a non-integer count: {count!r}", "count")
        self._logger.debug(f"Returning count {count}")
        return count

    def search(self, query: Dict[str, Any]) -> Dict[str, Any]:
        """Fetch one page for ``query``.

        Args:
            query: Structured query document; serialized to JSON here.

        Returns:
            Parsed response document.

        Raises:
            TransportError: On connection failure or non-200 status.
            ProtocolError: If the body is not a JSON object.
        """
        body = json.dumps(query).encode("utf-8")
        return self._get(self.search_url, body, phase="search")

    def _get(self, url: str, body: Optional[bytes], phase: str) -> Dict[str, Any]:
        self._logger.debug(f"URI for HTTP GET: {url}")
        try:
            response = self._session.get(url, data=body, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Request to {url} failed: {e}", phase) from e

        self._logger.debug(f"Response code: {response.status_code}")
        # Anything besides 200 OK is fatal
        if response.status_code != requests.codes.ok:
            text = response.text[:MAX_ERROR_BODY]
            raise TransportError(
                f"Got invalid HTTP status code {response.status_code} from {url}: {text}",
                phase,
                status_code=response.status_code,
                body=text,
            )

        try:
            document = response.json()
        except ValueError as e:
            raise ProtocolError(f"Response from {url} is not valid JSON: {e}", phase) from e

        if not isinstance(document, dict):
            raise ProtocolError(
                f"Response from {url} is not a JSON object: {type(document).__name__}", phase
            )
        return document

    def close(self) -> None:
        """Close the underlying session."""
        self._session.close()

    def __enter__(self) -> SearchClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"SearchClient(base_url={self.base_url!r}, index={self.index!r})"
