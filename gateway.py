"""
Thin wrapper around the Telegram Bot API bound to one inbound message
"""
from typing import Optional, Union

from telegram import Bot, Message, ReplyParameters
from telegram.constants import ChatAction, ParseMode

from models import InboundMessage

ChatId = Union[int, str]


class ChatGateway:
    """Outbound Telegram calls used by the pipeline, the audit log and the commands"""

    def __init__(self, bot: Bot, message: InboundMessage):
        self.bot = bot
        self.message = message

    def _reply_parameters(self) -> ReplyParameters:
        return ReplyParameters(
            message_id=self.message.message_id,
            allow_sending_without_reply=True,
        )

    async def reply(self, text: str, parse_mode: Optional[str] = ParseMode.MARKDOWN, quote: bool = True) -> Message:
        return await self.bot.send_message(
            chat_id=self.message.chat_id,
            text=text,
            parse_mode=parse_mode,
            reply_parameters=self._reply_parameters() if quote else None,
        )

    async def reply_video(self, path: str, caption: Optional[str] = None) -> Message:
        with open(path, 'rb') as video:
            return await self.bot.send_video(
                chat_id=self.message.chat_id,
                video=video,
                caption=caption,
                supports_streaming=True,
                reply_parameters=self._reply_parameters(),
            )

    async def send_message(self, chat_id: ChatId, text: str, parse_mode: Optional[str] = ParseMode.HTML) -> Message:
        return await self.bot.send_message(chat_id=chat_id, text=text, parse_mode=parse_mode)

    async def forward_message(self, chat_id: ChatId, from_chat_id: ChatId, message_id: int) -> Message:
        return await self.bot.forward_message(
            chat_id=chat_id,
            from_chat_id=from_chat_id,
            message_id=message_id,
        )

    async def delete_message(self, chat_id: ChatId, message_id: int) -> bool:
        return await self.bot.delete_message(chat_id=chat_id, message_id=message_id)

    async def send_chat_action(self, action: str = ChatAction.UPLOAD_VIDEO) -> bool:
        return await self.bot.send_chat_action(chat_id=self.message.chat_id, action=action)
