import os

import pytest

from downloader import VideoFetcher
from errors import PayloadTooLarge
from models import InboundMessage, RequestContext, StreamCandidate
from utils import FileManager

MIB = 1024 * 1024


class FakeGateway:
    """Records every outbound call instead of talking to Telegram"""

    def __init__(self, message, video_error=None, reply_error=None, forward_error=None):
        self.message = message
        self.video_error = video_error
        self.reply_error = reply_error
        self.forward_error = forward_error
        self.calls = []

    def names(self):
        return [call[0] for call in self.calls]

    def texts(self):
        return [call[1] for call in self.calls if call[0] == "reply"]

    async def reply(self, text, parse_mode="Markdown", quote=True):
        self.calls.append(("reply", text))
        if self.reply_error:
            raise self.reply_error

    async def reply_video(self, path, caption=None):
        self.calls.append(("reply_video", path, os.path.exists(path)))
        if self.video_error:
            raise self.video_error

    async def send_message(self, chat_id, text, parse_mode="HTML"):
        self.calls.append(("send_message", chat_id, text))
        if self.forward_error:
            raise self.forward_error

    async def forward_message(self, chat_id, from_chat_id, message_id):
        self.calls.append(("forward_message", chat_id, from_chat_id, message_id))

    async def delete_message(self, chat_id, message_id):
        self.calls.append(("delete_message", chat_id, message_id))
        return True

    async def send_chat_action(self, action="upload_video"):
        self.calls.append(("chat_action", action))
        return True


class FakeOracle:
    def __init__(self, result=True, error=None):
        self.result = result
        self.error = error
        self.calls = []
        self.closed = False

    async def is_shorts(self, video_id):
        self.calls.append(video_id)
        if self.error:
            raise self.error
        return self.result

    async def close(self):
        self.closed = True


class FakeResolver:
    def __init__(self, candidate=None, error=None):
        self.candidate = candidate or StreamCandidate(
            stream_url="https://cdn.example.com/video.mp4",
            quality_label="1080p",
            format_id="37",
            bitrate=4000.0,
            height=1080,
        )
        self.error = error
        self.calls = []

    async def resolve(self, video_id):
        self.calls.append(video_id)
        if self.error:
            raise self.error
        return self.candidate


class CountingFileManager(FileManager):
    def __init__(self, temp_dir):
        super().__init__(temp_dir)
        self.created = []
        self.cleaned = []

    def get_temp_path(self, name, extension="mp4"):
        path = super().get_temp_path(name, extension)
        self.created.append(path)
        return path

    def cleanup_file(self, file_path):
        self.cleaned.append(file_path)
        super().cleanup_file(file_path)


class StubFetcher(VideoFetcher):
    """Real fetch() scope, simulated transfer of payload_size bytes"""

    def __init__(self, file_manager, payload_size=10 * MIB, enforce_limit=True, error=None, **kwargs):
        super().__init__(file_manager, **kwargs)
        self.payload_size = payload_size
        self.enforce_limit = enforce_limit
        self.error = error
        self.downloads = []

    async def _download(self, url, path):
        self.downloads.append(url)
        if self.error:
            raise self.error
        if self.enforce_limit and self.payload_size > self.max_size:
            raise PayloadTooLarge(self.payload_size, self.max_size)
        with open(path, "wb") as f:
            f.write(b"\x00" * 16)
        return self.payload_size


@pytest.fixture
def file_manager(tmp_path):
    return CountingFileManager(str(tmp_path / "temp"))


@pytest.fixture
def make_message():
    def factory(text, chat_id=100, message_id=1, user_id=7, display_name="Jane Doe", username="jane"):
        return InboundMessage(
            chat_id=chat_id,
            user_id=user_id,
            display_name=display_name,
            username=username,
            text=text,
            message_id=message_id,
        )
    return factory


@pytest.fixture
def make_request(make_message):
    def factory(text, chat_id=100, message_id=1, **gateway_kwargs):
        message = make_message(text, chat_id=chat_id, message_id=message_id)
        return RequestContext(message=message, gateway=FakeGateway(message, **gateway_kwargs))
    return factory


@pytest.fixture
def make_oracle():
    return FakeOracle


@pytest.fixture
def make_resolver():
    return FakeResolver


@pytest.fixture
def make_fetcher(file_manager):
    def factory(**kwargs):
        return StubFetcher(file_manager, **kwargs)
    return factory


@pytest.fixture
def make_gateway():
    return FakeGateway
