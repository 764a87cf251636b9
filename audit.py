"""
Forward inbound messages to the operator log channel
"""
import asyncio
import html
import logging
from typing import Optional, Set, Union

from config import LOG_CHANNEL, MESSAGES
from gateway import ChatGateway
from models import InboundMessage

logger = logging.getLogger(__name__)


class AuditLogger:
    """Best effort audit trail, never blocks or fails the reply flow"""

    def __init__(self, destination: Optional[Union[int, str]] = LOG_CHANNEL):
        self.destination = destination
        self._tasks: Set[asyncio.Task] = set()

    def observe(self, message: InboundMessage, gateway: ChatGateway, is_admin: bool = False):
        if message.is_command:
            return

        logger.info(
            f"From: {message.display_name} (@{message.username}) ID: {message.user_id}\n"
            f"Message: {message.text}"
        )

        if self.destination is None or is_admin:
            return

        task = asyncio.get_running_loop().create_task(self._forward(message, gateway))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _forward(self, message: InboundMessage, gateway: ChatGateway):
        summary = MESSAGES["audit_summary"].format(
            name=html.escape(message.display_name),
            username=html.escape(message.username or "unknown"),
            user_id=message.user_id,
        )
        try:
            await gateway.send_message(self.destination, summary)
            await gateway.forward_message(self.destination, message.chat_id, message.message_id)
        except Exception as e:
            logger.error(f"Failed to forward message {message.message_id} to log channel: {e}")

    async def drain(self):
        """Wait for pending forwards"""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
