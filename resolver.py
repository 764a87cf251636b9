"""
Stream resolution using yt-dlp
"""
import re
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Sequence

import yt_dlp
from yt_dlp.utils import DownloadError

from config import HTTP_HEADERS, PREFERRED_QUALITY
from errors import FormatUnavailable, UpstreamUnavailable
from models import StreamCandidate

logger = logging.getLogger(__name__)

QUALITY_LABEL_REGEX = re.compile(r'^\d+p\d*$')
PROGRESSIVE_PROTOCOLS = {'http', 'https'}
WATCH_URL = "https://www.youtube.com/watch?v={}"


def _has_codec(value: Optional[str]) -> bool:
    return bool(value) and value != 'none'


def quality_label(fmt: Dict[str, Any]) -> str:
    """Label a yt-dlp format the way YouTube does, e.g. 720p or 1080p60"""
    note = fmt.get('format_note') or ''
    if QUALITY_LABEL_REGEX.match(note):
        return note

    height = fmt.get('height')
    if not height:
        return note or 'unknown'
    fps = fmt.get('fps')
    if fps and fps > 30:
        return f"{height}p{int(round(fps))}"
    return f"{height}p"


def candidates_from_formats(formats: List[Dict[str, Any]]) -> List[StreamCandidate]:
    """Map yt-dlp format dicts to stream candidates"""
    candidates = []
    for fmt in formats:
        url = fmt.get('url')
        if not url:
            continue
        direct = fmt.get('protocol', 'https') in PROGRESSIVE_PROTOCOLS
        candidates.append(StreamCandidate(
            stream_url=url,
            quality_label=quality_label(fmt),
            approximate_size_bytes=fmt.get('filesize') or fmt.get('filesize_approx'),
            format_id=str(fmt.get('format_id', '')),
            bitrate=fmt.get('tbr'),
            height=fmt.get('height'),
            has_audio=direct and _has_codec(fmt.get('acodec')),
            has_video=direct and _has_codec(fmt.get('vcodec')),
        ))
    return candidates


def _rank(candidate: StreamCandidate):
    return (candidate.bitrate or 0, candidate.height or 0, candidate.format_id)


def select_format(candidates: Sequence[StreamCandidate], preferred: Sequence[str] = ()) -> StreamCandidate:
    """
    Pick one progressive candidate.

    Candidates matching a preferred quality label or format id win, otherwise
    the highest bitrate progressive format is used. Video-only and audio-only
    formats are never selected.
    """
    progressive = [c for c in candidates if c.is_progressive]
    if not progressive:
        raise FormatUnavailable("No such format found")

    wanted = set(preferred)
    matches = [c for c in progressive if c.quality_label in wanted or c.format_id in wanted]
    return max(matches or progressive, key=_rank)


class StreamResolver:
    """Resolve a video id to a single playable stream"""

    def __init__(self, preferred: Sequence[str] = tuple(PREFERRED_QUALITY)):
        self.preferred = list(preferred)
        self.executor = ThreadPoolExecutor(max_workers=3)

    async def get_formats(self, video_id: str) -> List[Dict[str, Any]]:
        """Get available formats without downloading"""
        loop = asyncio.get_running_loop()

        def _get_info():
            ydl_opts = {
                'quiet': True,
                'no_warnings': True,
                'noplaylist': True,
                'socket_timeout': 30,
                'http_headers': HTTP_HEADERS,
            }
            with yt_dlp.YoutubeDL(ydl_opts) as ydl:
                return ydl.extract_info(WATCH_URL.format(video_id), download=False)

        try:
            info = await loop.run_in_executor(self.executor, _get_info)
        except DownloadError as e:
            raise UpstreamUnavailable(f"Could not get video info: {e}") from e

        return (info or {}).get('formats') or []

    async def resolve(self, video_id: str) -> StreamCandidate:
        formats = await self.get_formats(video_id)
        candidate = select_format(candidates_from_formats(formats), self.preferred)
        logger.info(f"Selected format {candidate.format_id} ({candidate.quality_label}) for {video_id}")
        return candidate

    def __del__(self):
        """Cleanup executor"""
        if hasattr(self, 'executor'):
            self.executor.shutdown(wait=False)
