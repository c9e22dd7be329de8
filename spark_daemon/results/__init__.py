"""
Spark Results Module

Writes results, status glyphs and error reports back into the vault.
"""

from .result_writer import (
    ResultWriter,
    atomic_write,
    strip_status,
    GLYPH_PROCESSING,
    GLYPH_COMPLETED,
    GLYPH_FAILED,
    GLYPH_WARNING,
)
from .error_writer import ErrorWriter, Notification

__all__ = [
    "ResultWriter",
    "atomic_write",
    "strip_status",
    "GLYPH_PROCESSING",
    "GLYPH_COMPLETED",
    "GLYPH_FAILED",
    "GLYPH_WARNING",
    "ErrorWriter",
    "Notification",
]
