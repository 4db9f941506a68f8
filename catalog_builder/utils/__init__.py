"""
Utility helpers shared across the catalog builder package.
"""

from .logging_utils import (
    log_section_start,
    log_section_complete,
    log_progress,
    log_warning,
    log_error,
)

__all__ = [
    "log_section_start",
    "log_section_complete",
    "log_progress",
    "log_warning",
    "log_error",
]
