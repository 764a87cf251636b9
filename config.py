"""
Configuration settings for the YouTube Shorts Telegram Bot
"""
import os
import logging
from typing import List, Union
from dotenv import load_dotenv

# Load environment variables from .env file (for local development)
load_dotenv(override=True)

logger = logging.getLogger(__name__)


def parse_id_list(raw: str) -> List[int]:
    """Parse a comma separated list of chat ids, skipping invalid entries"""
    ids = []
    for part in (raw or "").split(","):
        part = part.strip()
        if not part:
            continue
        try:
            ids.append(int(part))
        except ValueError:
            logger.warning(f"Ignoring invalid chat id in BOT_ADMIN: {part!r}")
    return ids


def parse_destination(raw: str) -> Union[int, str, None]:
    """Chat ids are numeric, channel usernames are kept as '@name'"""
    raw = (raw or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return raw


# Bot Token from BotFather
BOT_TOKEN = os.getenv("BOT_TOKEN", "").strip()

# Operators: their messages are never forwarded to the log channel
BOT_ADMINS = parse_id_list(os.getenv("BOT_ADMIN", ""))

# Audit destination for inbound messages
LOG_CHANNEL = parse_destination(os.getenv("LOG_CHANNEL", ""))

# Quality labels (or numeric format codes) tried before the highest bitrate fallback
PREFERRED_QUALITY = [
    q.strip() for q in os.getenv("PREFERRED_QUALITY", "1080p,1080p60").split(",") if q.strip()
]

# File size limits (in bytes)
MAX_FILE_SIZE = 50 * 1024 * 1024  # 50MB for Telegram upload

# Temporary directory for downloads
TEMP_DIR = os.getenv("TEMP_DIR", "./temp")

# Timeouts in seconds
EXECUTION_TIMEOUT = float(os.getenv("EXECUTION_TIMEOUT", "9"))
DOWNLOAD_TIMEOUT = float(os.getenv("DOWNLOAD_TIMEOUT", "60"))
ORACLE_TIMEOUT = float(os.getenv("ORACLE_TIMEOUT", "10"))

# Optional health check port
HEALTH_PORT = int(os.getenv("HEALTH_PORT", "0") or 0)

HTTP_HEADERS = {
    'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
    'Accept-Language': 'en-US,en;q=0.9',
}

# Bot messages (Telegram Markdown)
MESSAGES = {
    "start": "*Welcome!* ✨\nSend a YouTube shorts link.",

    "help": """*YouTube Shorts Downloader*

_This bot downloads YouTube shorts.
Send a link to try it out!_

📝 *How to use:*
1. Copy a YouTube shorts link
2. Send it to me
3. Receive the video!

⚠️ *Limitations:*
• Only YouTube shorts are supported
• Max file size: 50MB""",

    "invalid_link": "*Send a valid YouTube shorts link.*",

    "error": "*There was an error.*\n{error}",

    "file_too_large": "📦 *File size too big.*\n_The video is {size}, Telegram bots can only send up to {limit}._",

    "timeout": "*Execution timeout.*\n_Download took too long._",

    "generic_error": "An error occurred",

    "audit_summary": "<b>From: {name} (@{username}) ID: <code>{user_id}</code></b>",
}
