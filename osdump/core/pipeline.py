"""Export orchestrator: count check, producer/consumer wiring, reporting.

This module provides the ExportPipeline class, which runs exactly one
producer (the Paginator) and one consumer (the SinkWriter) on two worker
threads joined by a bounded WorkQueue, and reconciles failures from both
sides before re-raising them to the caller.
"""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, Optional, Protocol

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)

from ..transport.search_client import SearchClient
from ..utils.logging import get_logger
from .config import ExportConfig
from .errors import NothingToDumpError
from .paginator import PaginationState, Paginator
from .sink import SinkResult, SinkWriter
from .work_queue import WorkQueue


class DumpTransport(Protocol):
    """Client able to count documents and fetch pages of one index."""

    def count(self) -> int:
        ...

    def search(self, query: Dict[str, Any]) -> Dict[str, Any]:
        ...


@dataclass
class ExportStats:
    """Statistics for one export run.

    Attributes:
        index: Exported index name.
        documents_reported: Document count from the pre-flight check.
        records: Records handed to the work queue (and written).
        pages_fetched: Search requests issued, final empty page included.
        bytes_written: Uncompressed bytes written to the sink.
        start_time: Run start timestamp.
        end_time: Run end timestamp (None while running).
    """

    index: str = ""
    documents_reported: int = 0
    records: int = 0
    pages_fetched: int = 0
    bytes_written: int = 0
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None

    def duration_seconds(self) -> float:
        end = self.end_time or datetime.now()
        return (end - self.start_time).total_seconds()

    def records_per_second(self) -> float:
        duration = self.duration_seconds()
        if duration <= 0:
            return float(self.records)
        return self.records / duration

    def summary(self) -> str:
        return (
            f"Dumped {self.records} records in {self.duration_seconds():.1f} seconds, "
            f"average speed {self.records_per_second():.0f}/second"
        )


class ExportPipeline:
    """Runs one export of an index into a newline-delimited file.

    Attributes:
        config: Export configuration.
        logger: Logger instance for the pipeline.
    """

    def __init__(
        self,
        config: ExportConfig,
        client: Optional[DumpTransport] = None,
        logger: Optional[logging.Logger] = None,
        console: Optional[Console] = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            config: Export configuration.
            client: Optional transport. If None, a SearchClient is built
                from the configuration when the run starts and closed
                when it ends.
            logger: Optional logger instance.
            console: Optional rich console for the progress bar.
        """
        self.config = config
        self.logger = logger or get_logger("core.pipeline")
        self._client = client
        self._console = console or Console(stderr=True)

    def run(self) -> ExportStats:
        """Execute the export.

        Returns:
            ExportStats of the finished run.

        Raises:
            ExportError: Any transport, protocol, sink or configuration
                failure. Partial output is left in place.
        """
        self.config.validate()
        self.logger.debug(f"Configuration: {self.config!r}")

        if self._client is not None:
            return self._run_with(self._client)

        with SearchClient.from_config(self.config) as client:
            return self._run_with(client)

    def _run_with(self, client: DumpTransport) -> ExportStats:
        index = self.config.index
        stats = ExportStats(index=index, start_time=datetime.now())
        self.logger.info(f"Starting to dump {index}")

        count = client.count()
        stats.documents_reported = count
        self.logger.info(f"Index {index} has {count} documents to dump")
        if count == 0:
            raise NothingToDumpError(f"Nothing to dump, index {index} is empty")

        queue: WorkQueue[bytes] = WorkQueue(self.config.queue_capacity)
        state = PaginationState(window_size=self.config.window_size)
        sink = SinkWriter.from_config(self.config)

        try:
            with self._progress(count) as on_page:
                paginator = Paginator(client, queue, state, on_page=on_page)
                result = self._run_workers(paginator, sink, queue)
        finally:
            stats.end_time = datetime.now()
            stats.records = state.counter
            stats.pages_fetched = state.pages
            stats.bytes_written = sink.result.bytes_written

        if result.records_written != state.counter:
            self.logger.warning(
                f"Queued {state.counter} records but wrote {result.records_written}"
            )
        self.logger.info(stats.summary())
        self.logger.info(f"Finished dumping {index}")
        return stats

    def _run_workers(
        self,
        paginator: Paginator,
        sink: SinkWriter,
        queue: WorkQueue[bytes],
    ) -> SinkResult:
        """Run producer and consumer concurrently and wait for both.

        A failed consumer aborts the queue so a producer blocked on it is
        released. A failed producer closes the queue so the consumer can
        drain and flush what was already fetched.
        """
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="osdump") as executor:
            producer: Future = executor.submit(paginator.run)
            consumer: Future = executor.submit(sink.write_all, queue)

            try:
                wait([producer, consumer], return_when=FIRST_EXCEPTION)

                consumer_error = consumer.exception() if consumer.done() else None
                if consumer_error is not None:
                    queue.abort()
                    self.logger.debug("Consumer failed, aborted work queue")
                    raise consumer_error

                try:
                    producer.result()
                finally:
                    queue.close()
                    self.logger.debug("Closed work queue")

                return consumer.result()
            except KeyboardInterrupt:
                queue.abort()
                raise

    @contextmanager
    def _progress(self, total: int) -> Iterator[Optional[Callable[[int], None]]]:
        """Yield a per-page progress callback, or None when progress is off."""
        if not self.config.show_progress:
            yield None
            return

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            TimeRemainingColumn(),
            console=self._console,
            transient=False,
        ) as progress:
            task_id = progress.add_task(f"[cyan]Dumping {self.config.index}", total=total)

            def callback(records: int) -> None:
                progress.update(task_id, advance=records)

            yield callback

    def __repr__(self) -> str:
        return (
            f"ExportPipeline("
            f"index={self.config.index!r}, "
            f"output_path={self.config.output_path!r}, "
            f"window_size={self.config.window_size})"
        )
