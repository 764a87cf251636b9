"""
Request scoped data passed through the relay pipeline
"""
import dataclasses
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from telegram import Update
    from gateway import ChatGateway

COMMAND_MARKER = "/"


class RejectReason(Enum):
    NO_URL = "no_url"
    NOT_A_VIDEO = "not_a_video"
    NOT_SHORTS = "not_shorts"
    ORACLE_UNAVAILABLE = "oracle_unavailable"


class Outcome(Enum):
    DELIVERED = "delivered"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclasses.dataclass(frozen=True)
class InboundMessage:
    chat_id: int
    user_id: Optional[int]
    display_name: str
    username: Optional[str]
    text: str
    message_id: int
    timestamp: Optional[datetime] = None

    @property
    def is_command(self) -> bool:
        return self.text.startswith(COMMAND_MARKER)

    @classmethod
    def from_update(cls, update: "Update") -> "InboundMessage":
        message = update.effective_message
        user = update.effective_user
        return cls(
            chat_id=update.effective_chat.id,
            user_id=user.id if user else None,
            display_name=user.full_name if user else "",
            username=user.username if user else None,
            text=(message.text or message.caption or "").strip(),
            message_id=message.message_id,
            timestamp=message.date,
        )


@dataclasses.dataclass(frozen=True)
class VideoReference:
    video_id: str
    source_url: str


@dataclasses.dataclass(frozen=True)
class StreamCandidate:
    stream_url: str
    quality_label: str
    approximate_size_bytes: Optional[int] = None
    format_id: str = ""
    bitrate: Optional[float] = None
    height: Optional[int] = None
    has_audio: bool = True
    has_video: bool = True

    @property
    def is_progressive(self) -> bool:
        return self.has_audio and self.has_video


@dataclasses.dataclass(frozen=True)
class DownloadResult:
    byte_length: int
    path: str


@dataclasses.dataclass
class RequestContext:
    """Everything a single update needs, passed explicitly down the chain"""
    message: InboundMessage
    gateway: "ChatGateway"
    is_admin: bool = False


def session_key(message: InboundMessage) -> str:
    """Key used to serialize processing per chat"""
    return str(message.chat_id)
