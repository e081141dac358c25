"""Utility functions for comment attachment uploads."""

import mimetypes
import re
from pathlib import Path

DEFAULT_MIMETYPE = "application/octet-stream"
SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def sanitize_filename(filename: str) -> str:
    """Sanitize an upload filename before it is sent to the server.

    Drops directory components and hidden-file dots, replaces characters that
    are unsafe in multipart headers or on disk, and caps the length at 100
    characters while keeping the extension.

    Args:
        filename: Original filename chosen by the user

    Returns:
        Sanitized filename, or ``unnamed_file`` when nothing usable is left
    """
    # Keep only the final path component
    filename = Path(filename).name
    filename = filename.lstrip(".")

    # Allow only word characters, spaces, dots, and hyphens
    sanitized = re.sub(r"[^\w\s.-]", "_", filename)
    sanitized = re.sub(r"_+", "_", sanitized)
    sanitized = re.sub(r"\s+", " ", sanitized)

    if len(sanitized) > 100:
        name, dot, ext = sanitized.rpartition(".")
        if dot:
            max_name_len = 96 - len(ext)
            sanitized = f"{name[:max_name_len]}.{ext}" if max_name_len > 0 else f"file.{ext}"
        else:
            sanitized = sanitized[:100]

    # Only whitespace/underscores/dots/hyphens left
    if not re.sub(r"[\s._-]", "", sanitized):
        sanitized = "unnamed_file"

    return sanitized


def guess_mimetype(filename: str) -> str:
    mimetype, _ = mimetypes.guess_type(filename)
    return mimetype or DEFAULT_MIMETYPE


def format_file_size(size: int) -> str:
    """Format a byte count for display, e.g. ``1.5 KB``."""
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{round(value, 2):g} {SIZE_UNITS[unit]}"
