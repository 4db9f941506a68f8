"""
UTC timestamped console logging used by every catalog builder component.

Lines look like ``[2024-01-15 10:30:45] Starting: Folder Comparison`` so
that Lambda and local runs produce the same output.
"""

from datetime import datetime, UTC
from typing import Optional


def _utc_timestamp() -> str:
    """
    Generate the current UTC timestamp string.

    Returns:
        str: Timestamp formatted as YYYY-MM-DD HH:MM:SS in UTC.
    """
    return datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")


def _emit(message: str, *, end: str = "\n", flush: bool = False) -> None:
    print(f"[{_utc_timestamp()}] {message}", end=end, flush=flush)


def log_section_start(section: str) -> None:
    """
    Announce that a section of work is beginning.

    Args:
        section (str): Name of the section, e.g. "Remote Folder Listing".
    """
    _emit(f"Starting: {section}")


def log_section_complete(section: str, details: Optional[str] = None) -> None:
    """
    Announce that a section of work finished.

    Args:
        section (str): Name of the section that finished.
        details (Optional[str]): Short summary appended after the section name.
    """
    suffix = f" - {details}" if details else ""
    _emit(f"Completed: {section}{suffix}")


def log_progress(section: str, message: str, *, flush: bool = False) -> None:
    """
    Log an in-progress update for a section.

    Args:
        section (str): Name of the section that is running.
        message (str): Progress message.
        flush (bool): Whether to force flush the output buffer.
    """
    _emit(f"{section}: {message}", flush=flush)


def log_warning(section: str, message: str) -> None:
    """
    Log a recoverable problem, such as a duplicate entity or a skipped item.

    Args:
        section (str): Name of the section where the problem was seen.
        message (str): Description of the problem.
    """
    _emit(f"Warning in {section}: {message}")


def log_error(section: str, error: Exception | str) -> None:
    """
    Log an error that occurred during a section.

    Args:
        section (str): Name of the section where the error occurred.
        error (Exception | str): Exception instance or error message to record.
    """
    _emit(f"Error in {section}: {error}")
