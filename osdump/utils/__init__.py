"""
osdump.utils - Utility functions and helpers.
"""

from osdump.utils.logging import (
    setup_logging,
    get_logger,
    mask_sensitive_data,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "mask_sensitive_data",
]
