"""
Request interceptors run in order around every handler
"""
import time
import asyncio
import logging
from collections import Counter
from typing import Awaitable, Callable, Dict, Iterable, Sequence

from telegram.error import TelegramError

from audit import AuditLogger
from config import BOT_ADMINS, EXECUTION_TIMEOUT, MESSAGES
from models import RequestContext, session_key

logger = logging.getLogger(__name__)

Handler = Callable[[RequestContext], Awaitable[None]]


class Interceptor:
    """Wrap a handler: do work, then await call_next(request) to continue"""

    async def __call__(self, request: RequestContext, call_next: Handler) -> None:
        raise NotImplementedError


def compose(interceptors: Sequence[Interceptor], endpoint: Handler) -> Handler:
    """Chain interceptors around endpoint, first interceptor outermost"""
    handler = endpoint
    for interceptor in reversed(interceptors):
        handler = _bind(interceptor, handler)
    return handler


def _bind(interceptor: Interceptor, call_next: Handler) -> Handler:
    async def handler(request: RequestContext) -> None:
        await interceptor(request, call_next)
    return handler


class ChatSerializer(Interceptor):
    """At most one request in flight per chat, others wait their turn"""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Counter = Counter()

    async def __call__(self, request, call_next):
        key = session_key(request.message)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] += 1
        try:
            async with lock:
                await call_next(request)
        finally:
            self._users[key] -= 1
            if self._users[key] <= 0:
                del self._users[key]
                del self._locks[key]

    def active_chats(self) -> int:
        return len(self._locks)


class ExecutionBudget(Interceptor):
    """Abandon requests that run longer than the budget and tell the user"""

    def __init__(self, timeout: float = EXECUTION_TIMEOUT):
        self.timeout = timeout

    async def __call__(self, request, call_next):
        try:
            await asyncio.wait_for(call_next(request), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Execution time limit of {self.timeout}s exceeded for message "
                f"{request.message.message_id} in chat {request.message.chat_id}"
            )
            try:
                await request.gateway.reply(MESSAGES["timeout"])
            except TelegramError as e:
                logger.error(f"Failed to send timeout notice: {e}")


class ResponseTimer(Interceptor):

    async def __call__(self, request, call_next):
        before = time.monotonic()
        try:
            await call_next(request)
        finally:
            logger.info(f"Response time: {int((time.monotonic() - before) * 1000)} ms")


class AdminFlag(Interceptor):
    """Mark requests coming from operator chats"""

    def __init__(self, admins: Iterable[int] = BOT_ADMINS):
        self.admins = set(admins)

    async def __call__(self, request, call_next):
        request.is_admin = request.message.chat_id in self.admins
        await call_next(request)


class AuditInterceptor(Interceptor):

    def __init__(self, audit: AuditLogger):
        self.audit = audit

    async def __call__(self, request, call_next):
        self.audit.observe(request.message, request.gateway, request.is_admin)
        await call_next(request)
