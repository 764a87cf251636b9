"""
Decide whether a message references a YouTube shorts video
"""
import re
import asyncio
import logging
from typing import Optional
from urllib.parse import parse_qs, urlparse

import aiohttp

from config import HTTP_HEADERS, ORACLE_TIMEOUT
from errors import InvalidInput, UpstreamUnavailable
from models import RejectReason, VideoReference
from utils import extract_url

logger = logging.getLogger(__name__)

YOUTUBE_HOSTS = {
    'youtube.com', 'www.youtube.com', 'm.youtube.com', 'music.youtube.com',
    'youtube-nocookie.com', 'www.youtube-nocookie.com',
}
SHORT_LINK_HOSTS = {'youtu.be', 'www.youtu.be'}
PATH_PREFIXES = ('shorts', 'embed', 'v', 'live')
VIDEO_ID_REGEX = re.compile(r'^[A-Za-z0-9_-]+$')


def parse_video_id(url: str) -> Optional[str]:
    """Extract the video id from the usual YouTube URL shapes"""
    parsed = urlparse(url)
    host = (parsed.hostname or '').lower()
    segments = [s for s in parsed.path.split('/') if s]

    video_id = None
    if host in SHORT_LINK_HOSTS:
        video_id = segments[0] if segments else None
    elif host in YOUTUBE_HOSTS:
        if segments[:1] == ['watch']:
            video_id = parse_qs(parsed.query).get('v', [None])[0]
        elif len(segments) >= 2 and segments[0] in PATH_PREFIXES:
            video_id = segments[1]

    if video_id and VIDEO_ID_REGEX.match(video_id):
        return video_id
    return None


class ShortsOracle:
    """Ask YouTube whether a video is served on the /shorts/ page"""

    SHORTS_URL = "https://www.youtube.com/shorts/{}"

    def __init__(self, shorts_url: str = SHORTS_URL, timeout: float = ORACLE_TIMEOUT):
        self.shorts_url = shorts_url
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout, headers=HTTP_HEADERS)
        return self._session

    async def is_shorts(self, video_id: str) -> bool:
        # Regular videos are redirected to /watch, shorts answer 200
        url = self.shorts_url.format(video_id)
        try:
            async with self._get_session().head(url, allow_redirects=False) as response:
                return response.status == 200
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise UpstreamUnavailable(f"Could not check shorts status of {video_id}: {e}") from e

    async def close(self):
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None


class UrlClassifier:
    """Turn free form text into a VideoReference or raise InvalidInput"""

    def __init__(self, oracle: ShortsOracle):
        self.oracle = oracle

    async def classify(self, text: str) -> VideoReference:
        url = extract_url(text)
        if url is None:
            raise InvalidInput(RejectReason.NO_URL)

        video_id = parse_video_id(url)
        if video_id is None:
            raise InvalidInput(RejectReason.NOT_A_VIDEO, url)

        try:
            shorts = await self.oracle.is_shorts(video_id)
        except UpstreamUnavailable as e:
            raise InvalidInput(RejectReason.ORACLE_UNAVAILABLE, str(e)) from e

        if not shorts:
            raise InvalidInput(RejectReason.NOT_SHORTS, video_id)

        return VideoReference(video_id=video_id, source_url=url)

    async def close(self):
        await self.oracle.close()
