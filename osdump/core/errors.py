"""Exception hierarchy for the export pipeline.

Every fallible operation raises one of these; nothing is retried. The
orchestrator reconciles failures from both worker threads and the CLI is
the single place that turns them into a non-zero exit status.
"""

from __future__ import annotations

from typing import Optional


class ExportError(Exception):
    """Base exception for export failures.

    Attributes:
        phase: Pipeline phase that failed ("count", "search", "sink", ...).
    """

    phase = "pipeline"

    def __init__(self, message: str, phase: Optional[str] = None) -> None:
        super().__init__(message)
        if phase is not None:
            self.phase = phase


class ConfigurationError(ExportError):
    """Invalid configuration detected before the pipeline starts."""

    phase = "config"


class TransportError(ExportError):
    """Connection failure or non-200 response from the search service."""

    def __init__(
        self,
        message: str,
        phase: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        """Initialize with optional response details.

        Args:
            message: Error message.
            phase: Phase that issued the request.
            status_code: HTTP status code, if a response was received.
            body: Truncated response body, if a response was received.
        """
        super().__init__(message, phase)
        self.status_code = status_code
        self.body = body


class ProtocolError(ExportError):
    """Response body is not the structured document the protocol promises."""


class SinkError(ExportError):
    """Output path exists already, or cannot be opened or written."""

    phase = "sink"


class NothingToDumpError(ExportError):
    """Pre-flight count reported an empty index."""

    phase = "count"


class QueueAbortedError(ExportError):
    """The work queue was aborted while a producer was blocked on it."""


class QueueClosedError(RuntimeError):
    """Put on a closed work queue. Always a programming error."""
