"""
Relay pipeline: classify, resolve, fetch, deliver, clean up
"""
import logging

from telegram.constants import ChatAction
from telegram.error import TelegramError
from telegram.helpers import escape_markdown

from classifier import UrlClassifier
from config import MAX_FILE_SIZE, MESSAGES
from downloader import VideoFetcher
from errors import (
    DeliveryFailure, FormatUnavailable, InvalidInput, PayloadTooLarge, UpstreamUnavailable,
)
from gateway import ChatGateway
from models import DownloadResult, Outcome, RejectReason, RequestContext
from resolver import StreamResolver
from utils import format_file_size

logger = logging.getLogger(__name__)


class RelayPipeline:
    """Handle one inbound link end to end"""

    def __init__(self, classifier: UrlClassifier, resolver: StreamResolver, fetcher: VideoFetcher,
                 max_file_size: int = MAX_FILE_SIZE):
        self.classifier = classifier
        self.resolver = resolver
        self.fetcher = fetcher
        self.max_file_size = max_file_size

    async def close(self):
        await self.classifier.close()
        await self.fetcher.close()

    async def handle(self, request: RequestContext) -> Outcome:
        message = request.message
        gateway = request.gateway

        try:
            reference = await self.classifier.classify(message.text)
        except InvalidInput as e:
            if e.reason is RejectReason.ORACLE_UNAVAILABLE:
                logger.warning(f"Shorts check unavailable for chat {message.chat_id}: {e.detail}")
            else:
                logger.info(f"Rejected message {message.message_id} in chat {message.chat_id}: {e}")
            await self._notify(gateway, MESSAGES["invalid_link"])
            return Outcome.REJECTED

        logger.info(f"Processing shorts {reference.video_id} for chat {message.chat_id}")
        try:
            await gateway.send_chat_action(ChatAction.UPLOAD_VIDEO)
        except TelegramError as e:
            logger.warning(f"Could not send chat action to chat {message.chat_id}: {e}")

        try:
            candidate = await self.resolver.resolve(reference.video_id)
            async with self.fetcher.fetch(candidate, reference.video_id) as download:
                await self._deliver(gateway, download)
            return Outcome.DELIVERED

        except PayloadTooLarge as e:
            logger.info(f"Video {reference.video_id} too large: {format_file_size(e.size)}")
            await self._notify(gateway, MESSAGES["file_too_large"].format(
                size=format_file_size(e.size), limit=format_file_size(e.limit)))
            return Outcome.REJECTED

        except FormatUnavailable as e:
            logger.error(f"Format not found for {reference.video_id}: {e}")
            await self._notify_error(gateway, str(e))
            return Outcome.FAILED

        except UpstreamUnavailable as e:
            logger.error(f"Upstream error for {reference.video_id}: {e}")
            await self._notify_error(gateway, str(e))
            return Outcome.FAILED

        except DeliveryFailure as e:
            if e.is_blocked:
                logger.info(f"Bot was blocked by user in chat {message.chat_id}")
            else:
                logger.error(f"Could not deliver {reference.video_id} to chat {message.chat_id}: {e}")
                await self._notify(gateway, MESSAGES["generic_error"], parse_mode=None)
            return Outcome.FAILED

        except Exception as e:
            logger.exception(f"Unexpected error for {reference.video_id}: {e}")
            await self._notify_error(gateway, "An unexpected error occurred. Please try again later.")
            return Outcome.FAILED

    async def _deliver(self, gateway: ChatGateway, download: DownloadResult):
        if download.byte_length > self.max_file_size:
            raise PayloadTooLarge(download.byte_length, self.max_file_size)

        try:
            await gateway.reply_video(download.path)
        except TelegramError as e:
            raise DeliveryFailure(e) from e

    async def _notify_error(self, gateway: ChatGateway, description: str):
        await self._notify(gateway, MESSAGES["error"].format(error=escape_markdown(description)))

    async def _notify(self, gateway: ChatGateway, text: str, **kwargs):
        try:
            await gateway.reply(text, **kwargs)
        except TelegramError as e:
            logger.error(f"Failed to send reply to chat {gateway.message.chat_id}: {e}")
