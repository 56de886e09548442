"""Newline-delimited output sink with optional Brotli compression.

The sink is the consumer half of the export pipeline. Layering, from the
outside in::

    BrotliStreamWriter (optional) -> io.BufferedWriter -> raw file (O_EXCL)

Shutdown flushes and closes the layers in that same order so no buffered
or compressed bytes are lost.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator, Optional

import brotli

from ..utils.logging import get_logger
from .config import DEFAULT_QUALITY, ExportConfig
from .errors import SinkError

DEFAULT_BUFFER_SIZE = 1024 * 1024  # 1MB
LINE_FEED = b"\n"


class BrotliStreamWriter:
    """Write-only stream compressing everything it receives with Brotli."""

    def __init__(self, target: BinaryIO, quality: int = DEFAULT_QUALITY) -> None:
        self._target = target
        self._compressor = brotli.Compressor(quality=quality)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, data: bytes) -> int:
        if self._closed:
            raise ValueError("write to closed BrotliStreamWriter")
        compressed = self._compressor.process(data)
        if compressed:
            self._target.write(compressed)
        return len(data)

    def flush(self) -> None:
        if not self._closed:
            self._target.write(self._compressor.flush())

    def close(self) -> None:
        """Finish the Brotli stream. Does not close the target."""
        if not self._closed:
            self._target.write(self._compressor.finish())
            self._closed = True


@dataclass
class SinkResult:
    """Outcome of draining a record stream into the sink.

    Attributes:
        path: Output file path.
        records_written: Number of records (lines) written.
        bytes_written: Uncompressed bytes written, separators included.
        compressed: Whether the stream went through Brotli.
    """

    path: Path
    records_written: int = 0
    bytes_written: int = 0
    compressed: bool = False


class SinkWriter:
    """Writes records, one per line, to a file that must not exist yet.

    Use as a context manager, or call ``open()``/``close()`` explicitly.
    """

    def __init__(
        self,
        output_path: Path,
        brotli_enabled: bool = False,
        quality: int = DEFAULT_QUALITY,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """Initialize the sink without touching the filesystem.

        Args:
            output_path: File to create.
            brotli_enabled: Compress the stream with Brotli.
            quality: Brotli quality level.
            buffer_size: Size of the write buffer in bytes.
            logger: Optional logger instance.
        """
        self.output_path = Path(output_path)
        self.brotli_enabled = brotli_enabled
        self.quality = quality
        self.buffer_size = buffer_size
        self._logger = logger or get_logger("core.sink")

        self._file: Optional[BinaryIO] = None
        self._buffer: Optional[io.BufferedWriter] = None
        self._compressor: Optional[BrotliStreamWriter] = None
        self._out: Optional[BinaryIO] = None
        self._result = SinkResult(path=self.output_path, compressed=brotli_enabled)

    @classmethod
    def from_config(cls, config: ExportConfig) -> SinkWriter:
        return cls(config.output_path, brotli_enabled=config.brotli, quality=config.quality)

    @property
    def result(self) -> SinkResult:
        return self._result

    def open(self) -> None:
        """Create the output file exclusively and stack the writers on it.

        Raises:
            SinkError: If the file exists already or cannot be created.
        """
        try:
            self._file = open(self.output_path, "xb", buffering=0)
        except FileExistsError as e:
            raise SinkError(f"Output file already exists: {self.output_path}") from e
        except OSError as e:
            raise SinkError(f"Cannot create output file {self.output_path}: {e}") from e

        self._buffer = io.BufferedWriter(self._file, buffer_size=self.buffer_size)
        if self.brotli_enabled:
            self._compressor = BrotliStreamWriter(self._buffer, quality=self.quality)
            self._out = self._compressor
        else:
            self._out = self._buffer

        self._logger.debug(
            f"Opened {self.output_path} (brotli={self.brotli_enabled}, quality={self.quality})"
        )

    def write_record(self, record: bytes) -> None:
        """Write one record followed by a line feed.

        Raises:
            SinkError: If the sink is not open or the write fails.
        """
        if self._out is None:
            raise SinkError("Sink is not open")
        try:
            self._out.write(record)
            self._out.write(LINE_FEED)
        except OSError as e:
            raise SinkError(f"Write to {self.output_path} failed: {e}") from e
        self._result.records_written += 1
        self._result.bytes_written += len(record) + 1

    def write_all(self, records: Iterable[bytes]) -> SinkResult:
        """Open the sink, write every record in order and close it.

        The sink is closed on every exit path.

        Args:
            records: Record stream, e.g. a ``WorkQueue`` being drained.

        Returns:
            SinkResult with the final counters.
        """
        with self:
            for record in records:
                self.write_record(record)
        self._logger.debug(f"Consumer done, wrote {self._result.records_written} record(s)")
        return self._result

    def close(self) -> None:
        """Flush and close compressor, buffer and file, in that order."""
        try:
            if self._compressor is not None:
                self._compressor.flush()
                self._compressor.close()
            if self._buffer is not None:
                # Flushes, then closes the raw file even if the flush fails
                self._buffer.close()
            elif self._file is not None:
                self._file.close()
        except OSError as e:
            raise SinkError(f"Closing {self.output_path} failed: {e}") from e
        finally:
            self._compressor = None
            self._buffer = None
            self._file = None
            self._out = None

    def __enter__(self) -> SinkWriter:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"SinkWriter(output_path={self.output_path!r}, "
            f"brotli_enabled={self.brotli_enabled}, quality={self.quality})"
        )


def iter_records(
    path: Path,
    brotli_enabled: bool = False,
    chunk_size: int = DEFAULT_BUFFER_SIZE,
) -> Iterator[bytes]:
    """Read back a dump written by SinkWriter, one record per item.

    Args:
        path: Dump file.
        brotli_enabled: Decompress the file with Brotli while reading.
        chunk_size: Bytes read from disk per step.

    Yields:
        Each line without its line feed.

    Raises:
        SinkError: If the file cannot be read or is not valid Brotli data.
    """
    decompressor = brotli.Decompressor() if brotli_enabled else None
    pending = b""
    try:
        with open(path, "rb") as f:
            while True:
                chunk = f.read(chunk_size)
                if not chunk:
                    break
                if decompressor is not None:
                    chunk = decompressor.process(chunk)
                pending += chunk
                *lines, pending = pending.split(LINE_FEED)
                yield from lines
    except brotli.error as e:
        raise SinkError(f"{path} is not a valid Brotli stream: {e}") from e
    except OSError as e:
        raise SinkError(f"Cannot read {path}: {e}") from e

    if decompressor is not None and not decompressor.is_finished():
        raise SinkError(f"{path} ends with a truncated Brotli stream")
    if pending:
        yield pending
