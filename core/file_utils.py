"""
Utilities for validating and naming uploaded files.
"""
import mimetypes
import os
import time
from typing import Optional
from core.config import settings

TEXT_EXTENSIONS = {".txt", ".md", ".html", ".htm", ".csv"}


def file_extension(filename: str) -> str:
    return os.path.splitext(filename or "")[1].lower()


def validate_file_type(filename: str) -> bool:
    """
    Validate if the file type is allowed.

    Args:
        filename: Name of the file

    Returns:
        bool: True if file type is allowed, False otherwise
    """
    return file_extension(filename) in settings.allowed_file_types


def validate_file_size(file_size: int) -> bool:
    max_size_bytes = settings.max_file_size_mb * 1024 * 1024
    return 0 < file_size <= max_size_bytes


def storage_filename(user_id: int, filename: str, now: Optional[float] = None) -> str:
    """Object name for an upload: ``<user>_<epoch millis><ext>``."""
    millis = int((now if now is not None else time.time()) * 1000)
    return f"{user_id}_{millis}{file_extension(filename)}"


def guess_mime_type(filename: str, declared: Optional[str] = None) -> str:
    if declared and declared != "application/octet-stream":
        return declared
    return mimetypes.guess_type(filename)[0] or "application/octet-stream"


def is_text_like(filename: str, mime_type: Optional[str] = None) -> bool:
    """Whether a stored file can be read back as text for export."""
    if mime_type and mime_type.startswith("text/"):
        return True
    return file_extension(filename) in TEXT_EXTENSIONS
