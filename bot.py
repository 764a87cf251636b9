"""
Telegram bot that relays YouTube shorts as video attachments
"""
import logging
from typing import Optional

from telegram import Update
from telegram.error import NetworkError, TelegramError
from telegram.ext import Application, CommandHandler, ContextTypes, MessageHandler, filters

from audit import AuditLogger
from classifier import ShortsOracle, UrlClassifier
from config import BOT_TOKEN, HEALTH_PORT, MESSAGES, TEMP_DIR
from downloader import VideoFetcher
from errors import is_blocked_by_user
from gateway import ChatGateway
from health import HealthServer
from middleware import (
    AdminFlag, AuditInterceptor, ChatSerializer, ExecutionBudget, Handler, ResponseTimer, compose,
)
from models import InboundMessage, RequestContext
from pipeline import RelayPipeline
from resolver import StreamResolver
from utils import FileManager

logger = logging.getLogger(__name__)


class TelegramShortsBot:
    """Main Telegram Bot class"""

    def __init__(self, pipeline: Optional[RelayPipeline] = None, audit: Optional[AuditLogger] = None):
        self.file_manager = FileManager(TEMP_DIR)
        self.pipeline = pipeline or RelayPipeline(
            classifier=UrlClassifier(ShortsOracle()),
            resolver=StreamResolver(),
            fetcher=VideoFetcher(self.file_manager),
        )
        self.audit = audit or AuditLogger()
        self.interceptors = [
            ChatSerializer(),
            ExecutionBudget(),
            ResponseTimer(),
            AdminFlag(),
            AuditInterceptor(self.audit),
        ]
        self.health_server = HealthServer(HEALTH_PORT) if HEALTH_PORT else None

    async def start_command(self, request: RequestContext):
        """Handle /start command"""
        logger.info(f"New user: {request.message.user_id} (@{request.message.username})")
        await request.gateway.reply(MESSAGES["start"], quote=False)

    async def help_command(self, request: RequestContext):
        """Handle /help command"""
        logger.info(f"Help command sent to {request.message.user_id}")
        await request.gateway.reply(MESSAGES["help"], quote=False)

    async def handle_url(self, request: RequestContext):
        """Handle text messages, expected to contain a shorts link"""
        outcome = await self.pipeline.handle(request)
        logger.info(f"Message {request.message.message_id} in chat {request.message.chat_id}: {outcome.value}")

    def dispatch(self, endpoint: Handler):
        """Adapt an endpoint to a python-telegram-bot callback running the interceptor chain"""
        chain = compose(self.interceptors, endpoint)

        async def callback(update: Update, context: ContextTypes.DEFAULT_TYPE):
            if update.effective_message is None or update.effective_chat is None:
                return
            message = InboundMessage.from_update(update)
            await chain(RequestContext(message=message, gateway=ChatGateway(context.bot, message)))

        return callback

    async def error_handler(self, update: object, context: ContextTypes.DEFAULT_TYPE):
        """Handle errors that escaped the pipeline"""
        error = context.error
        update_id = update.update_id if isinstance(update, Update) else None
        logger.error(f"Error while handling update {update_id}")

        if is_blocked_by_user(error):
            logger.info("Bot was blocked by the user")
        elif isinstance(error, NetworkError):
            logger.error(f"Could not contact Telegram: {error}")
        elif isinstance(error, TelegramError):
            logger.error(f"Error in request: {error}")
            if isinstance(update, Update) and update.effective_message:
                try:
                    await update.effective_message.reply_text(MESSAGES["generic_error"])
                except TelegramError as e:
                    logger.error(f"Failed to report error: {e}")
        else:
            logger.error("Unknown error", exc_info=error)

    async def _cleanup_job(self, context: ContextTypes.DEFAULT_TYPE):
        """Periodic cleanup job"""
        try:
            self.file_manager.cleanup_old_files()
            logger.info("Periodic cleanup completed")
        except OSError as e:
            logger.error(f"Cleanup job error: {e}")

    async def _post_init(self, application: Application):
        if self.health_server:
            await self.health_server.start()

    async def _post_shutdown(self, application: Application):
        await self.audit.drain()
        await self.pipeline.close()
        if self.health_server:
            await self.health_server.stop()

    def build_application(self) -> Application:
        application = (
            Application.builder()
            .token(BOT_TOKEN)
            .concurrent_updates(True)
            .post_init(self._post_init)
            .post_shutdown(self._post_shutdown)
            .build()
        )

        application.add_handler(CommandHandler("start", self.dispatch(self.start_command)))
        application.add_handler(CommandHandler("help", self.dispatch(self.help_command)))
        application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, self.dispatch(self.handle_url)))
        application.add_error_handler(self.error_handler)

        # Temp files orphaned by a crash
        job_queue = application.job_queue
        if job_queue:
            job_queue.run_repeating(self._cleanup_job, interval=3600, first=60)

        return application

    def run(self):
        """Run the bot"""
        application = self.build_application()
        logger.info("Bot started, polling for updates...")
        application.run_polling(allowed_updates=Update.ALL_TYPES, drop_pending_updates=True)
