"""Export run configuration."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..utils.logging import mask_sensitive_data
from .errors import ConfigurationError
from .work_queue import DEFAULT_CAPACITY

DEFAULT_BASE_URL = "https://localhost:9200"
DEFAULT_USER = "graylog"
DEFAULT_PASSWORD = "password"
DEFAULT_CA_PATH = Path("ca.pem")
DEFAULT_INDEX = "graylog_0"
DEFAULT_WINDOW_SIZE = 1000
DEFAULT_OUTPUT_PATH = Path("graylog_0.json")
DEFAULT_QUALITY = 2

MIN_QUALITY = 0
MAX_QUALITY = 11


@dataclass(frozen=True)
class ExportConfig:
    """Configuration for one export run. Never mutated by the pipeline.

    Attributes:
        base_url: Search service base URL (e.g., https://localhost:9200).
        user: Basic auth user.
        password: Basic auth password.
        ca_path: CA certificate used to verify the service when using TLS.
        index: Index to export.
        window_size: Documents requested per page.
        output_path: File to create. Must not exist yet.
        brotli: If True, compress the output stream with Brotli.
        quality: Brotli quality level (0-11).
        queue_capacity: Records buffered between network and disk.
        debug: Enable debug logging.
        show_progress: Render a progress bar during the run.
    """

    base_url: str = DEFAULT_BASE_URL
    user: str = DEFAULT_USER
    password: str = DEFAULT_PASSWORD
    ca_path: Optional[Path] = DEFAULT_CA_PATH
    index: str = DEFAULT_INDEX
    window_size: int = DEFAULT_WINDOW_SIZE
    output_path: Path = DEFAULT_OUTPUT_PATH
    brotli: bool = False
    quality: int = DEFAULT_QUALITY
    queue_capacity: int = DEFAULT_CAPACITY
    debug: bool = False
    show_progress: bool = False

    @property
    def use_tls(self) -> bool:
        return self.base_url.startswith("https")

    @property
    def base(self) -> str:
        return self.base_url.rstrip("/")

    def validate(self) -> None:
        """Check value ranges before any resource is touched.

        Raises:
            ConfigurationError: If any value is out of range.
        """
        if not self.base_url:
            raise ConfigurationError("Base URL must not be empty")
        if not self.index:
            raise ConfigurationError("Index name must not be empty")
        if self.window_size < 1:
            raise ConfigurationError(f"Window size must be positive, got {self.window_size}")
        if self.queue_capacity < 1:
            raise ConfigurationError(
                f"Queue capacity must be positive, got {self.queue_capacity}"
            )
        if self.brotli and not MIN_QUALITY <= self.quality <= MAX_QUALITY:
            raise ConfigurationError(
                f"Brotli quality must be between {MIN_QUALITY} and {MAX_QUALITY}, "
                f"got {self.quality}"
            )

    def __repr__(self) -> str:
        return (
            f"ExportConfig(base_url={self.base_url!r}, user={self.user!r}, "
            f"password={mask_sensitive_data(self.password)!r}, ca_path={self.ca_path!r}, "
            f"index={self.index!r}, window_size={self.window_size}, "
            f"output_path={self.output_path!r}, brotli={self.brotli}, "
            f"quality={self.quality}, queue_capacity={self.queue_capacity})"
        )
