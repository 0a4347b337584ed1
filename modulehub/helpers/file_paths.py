import logging
import os

from modulehub.config import UPLOADS_DIR

logger = logging.getLogger(__name__)

UPLOADS_URL_PREFIX = "/uploads"


def get_upload_url(filename: str) -> str:
    return f"{UPLOADS_URL_PREFIX}/{filename}"


def get_upload_fs_path(file_url: str) -> str:
    """
    Converts an attachment path -> absolute filesystem path
    Example:
    /uploads/notes-1718000000000-42.pdf
    -> /srv/modulehub/uploads/notes-1718000000000-42.pdf
    """
    return os.path.join(UPLOADS_DIR, os.path.basename(file_url))


def delete_upload_safely(file_url: str) -> bool:
    """
    Remove the bytes behind an attachment path.
    Failures are logged and reported as False, never raised.
    """
    if not file_url:
        return False

    fs_path = get_upload_fs_path(file_url)
    try:
        if os.path.exists(fs_path):
            os.remove(fs_path)
            return True
    except OSError as e:
        logger.error(f"Error deleting file from local storage: {fs_path} ({str(e)})")
    return False


def delete_uploads_safely(file_urls) -> int:
    """Best-effort removal of many files; returns how many were deleted."""
    deleted = 0
    for file_url in file_urls:
        if delete_upload_safely(file_url):
            deleted += 1
    return deleted
