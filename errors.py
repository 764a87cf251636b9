"""
Exceptions raised by the relay pipeline and its collaborators
"""
from typing import Optional

from telegram.error import Forbidden

from models import RejectReason


class ShortsBotError(Exception):
    """Base class for every error the pipeline knows how to report"""


class InvalidInput(ShortsBotError):
    """The message does not reference a YouTube shorts video"""

    def __init__(self, reason: RejectReason, detail: str = ""):
        self.reason = reason
        self.detail = detail
        super().__init__(f"{reason.value}: {detail}" if detail else reason.value)


class UpstreamUnavailable(ShortsBotError):
    """The shorts oracle or the stream provider could not be reached"""


class FormatUnavailable(ShortsBotError):
    """No acceptable stream format was found"""


class PayloadTooLarge(ShortsBotError):
    """The video exceeds the Telegram upload ceiling"""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Payload of {size} bytes exceeds the {limit} byte limit")


class DeliveryFailure(ShortsBotError):
    """Telegram rejected or could not complete the upload"""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(str(cause))

    @property
    def is_blocked(self) -> bool:
        return is_blocked_by_user(self.cause)


def is_blocked_by_user(error: Optional[BaseException]) -> bool:
    """Telegram reports 'Forbidden: bot was blocked by the user'"""
    return isinstance(error, Forbidden) and "blocked by the user" in str(error).lower()
