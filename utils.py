"""
Utility functions for the YouTube Shorts Telegram Bot
"""
import os
import re
import tempfile
import logging
import validators
from datetime import datetime, timedelta
from typing import Optional

logger = logging.getLogger(__name__)

URL_REGEX = re.compile(r"(https?://[^\s]+)", re.IGNORECASE)
# Sentence punctuation glued to a link is not part of it
TRAILING_PUNCTUATION = ".,;:!?)]}>'\""


class FileManager:
    """Manage temporary files and cleanup"""

    def __init__(self, temp_dir: str):
        self.temp_dir = temp_dir
        self.ensure_temp_dir()

    def ensure_temp_dir(self):
        """Ensure temporary directory exists"""
        os.makedirs(self.temp_dir, exist_ok=True)

    def get_temp_path(self, name: str, extension: str = "mp4") -> str:
        """Reserve a unique temporary file path"""
        fd, path = tempfile.mkstemp(
            prefix=f"download_{sanitize_filename(name)}_",
            suffix=f".{extension}",
            dir=self.temp_dir,
        )
        os.close(fd)
        return path

    def cleanup_file(self, file_path: str):
        """Safely remove a file"""
        try:
            if os.path.exists(file_path):
                os.remove(file_path)
                logger.info(f"Cleaned up file: {file_path}")
        except OSError as e:
            logger.error(f"Error cleaning up file {file_path}: {e}")

    def cleanup_old_files(self, max_age_hours: int = 1):
        """Remove temporary files left behind by crashed requests"""
        cutoff_time = datetime.now() - timedelta(hours=max_age_hours)

        for filename in os.listdir(self.temp_dir):
            if filename == '.gitkeep':
                continue

            file_path = os.path.join(self.temp_dir, filename)
            if os.path.isfile(file_path):
                file_time = datetime.fromtimestamp(os.path.getmtime(file_path))
                if file_time < cutoff_time:
                    self.cleanup_file(file_path)


def validate_url(url: str) -> bool:
    """Validate if the provided string is a valid URL"""
    return validators.url(url) is True


def extract_url(text: str) -> Optional[str]:
    """Return the first well formed http(s) URL found in free form text"""
    for match in URL_REGEX.finditer(text or ""):
        candidate = match.group(1).rstrip(TRAILING_PUNCTUATION)
        if validate_url(candidate):
            return candidate
    return None


def format_file_size(size_bytes: int) -> str:
    """Format file size in human readable format"""
    if size_bytes == 0:
        return "0B"

    size_names = ["B", "KB", "MB", "GB"]
    i = 0
    while size_bytes >= 1024 and i < len(size_names) - 1:
        size_bytes = size_bytes / 1024.0
        i += 1

    return f"{size_bytes:.1f}{size_names[i]}"


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe file operations"""
    invalid_chars = '<>:"/\\|?* '
    for char in invalid_chars:
        filename = filename.replace(char, '_')

    return filename[:64]
