#!/usr/bin/env python3
"""
YouTube Shorts Telegram Bot
Main entry point for the application
"""
import sys
import logging

from config import BOT_TOKEN

logger = logging.getLogger(__name__)


def setup_logging():
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler('bot.log'),
            logging.StreamHandler(sys.stdout)
        ]
    )
    # getUpdates is logged on every poll otherwise
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("telegram").setLevel(logging.WARNING)


def check_dependencies():
    """Check if all required dependencies are available"""
    missing_deps = []

    try:
        import telegram
    except ImportError:
        missing_deps.append("python-telegram-bot")

    try:
        import yt_dlp
    except ImportError:
        missing_deps.append("yt-dlp")

    try:
        import validators
    except ImportError:
        missing_deps.append("validators")

    try:
        import aiohttp
    except ImportError:
        missing_deps.append("aiohttp")

    if missing_deps:
        logger.error(f"Missing dependencies: {', '.join(missing_deps)}")
        logger.error("Please install missing dependencies using pip:")
        for dep in missing_deps:
            logger.error(f"  pip install {dep}")
        return False

    return True


def setup_environment():
    """Setup the environment for the bot"""
    if not BOT_TOKEN:
        logger.error("Bot token not configured!")
        logger.error("Please set the BOT_TOKEN environment variable or add it to .env")
        logger.error("Get your bot token from @BotFather on Telegram")
        return False

    return True


def main():
    """Main function"""
    setup_logging()
    logger.info("Starting YouTube Shorts Telegram Bot...")

    if not check_dependencies():
        sys.exit(1)

    if not setup_environment():
        sys.exit(1)

    from bot import TelegramShortsBot

    try:
        TelegramShortsBot().run()
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")


if __name__ == "__main__":
    main()
