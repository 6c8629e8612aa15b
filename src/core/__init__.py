"""
Core module for cross-cutting concerns.

This module provides:
- Structured logging configuration
- Request tracing middleware
- The error taxonomy
- Common utilities
"""

from core.logging import configure_logging, get_logger
from core.errors import ReconError, InvalidArgument, InvalidQuery, StorageUnavailable
from core.utils import convert_numpy, dedupe_preserving_order, is_finite_number, to_score

__all__ = [
    "configure_logging",
    "get_logger",
    "ReconError",
    "InvalidArgument",
    "InvalidQuery",
    "StorageUnavailable",
    "convert_numpy",
    "dedupe_preserving_order",
    "is_finite_number",
    "to_score",
]
