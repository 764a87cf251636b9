"""
Stream a resolved video into a scoped temporary file
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import aiohttp

from config import DOWNLOAD_TIMEOUT, HTTP_HEADERS, MAX_FILE_SIZE
from errors import PayloadTooLarge, UpstreamUnavailable
from models import DownloadResult, StreamCandidate
from utils import FileManager, format_file_size

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class VideoFetcher:
    """Download stream candidates, never keeping more than max_size bytes"""

    def __init__(self, file_manager: FileManager, max_size: int = MAX_FILE_SIZE,
                 timeout: float = DOWNLOAD_TIMEOUT, chunk_size: int = CHUNK_SIZE):
        self.file_manager = file_manager
        self.max_size = max_size
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.chunk_size = chunk_size
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout, headers=HTTP_HEADERS)
        return self._session

    async def close(self):
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    @asynccontextmanager
    async def fetch(self, candidate: StreamCandidate, name: str) -> AsyncIterator[DownloadResult]:
        """
        Download the candidate and yield the result.

        The temporary file is removed when the block exits, whatever the
        outcome, including cancellation.
        """
        path = self.file_manager.get_temp_path(name, "mp4")
        try:
            if candidate.approximate_size_bytes and candidate.approximate_size_bytes > self.max_size:
                raise PayloadTooLarge(candidate.approximate_size_bytes, self.max_size)

            byte_length = await self._download(candidate.stream_url, path)
            logger.info(f"Downloaded {format_file_size(byte_length)} to {path}")
            yield DownloadResult(byte_length=byte_length, path=path)
        finally:
            self.file_manager.cleanup_file(path)

    async def _download(self, url: str, path: str) -> int:
        try:
            async with self._get_session().get(url) as response:
                if response.status != 200:
                    raise UpstreamUnavailable(f"Error downloading video: HTTP {response.status}")

                declared = response.content_length
                if declared is not None and declared > self.max_size:
                    raise PayloadTooLarge(declared, self.max_size)

                received = 0
                with open(path, 'wb') as f:
                    async for chunk in response.content.iter_chunked(self.chunk_size):
                        received += len(chunk)
                        if received > self.max_size:
                            raise PayloadTooLarge(received, self.max_size)
                        f.write(chunk)
                return received

        except aiohttp.ClientError as e:
            raise UpstreamUnavailable(f"Network error during download: {e}") from e
        except asyncio.TimeoutError as e:
            raise UpstreamUnavailable("Download timed out") from e
