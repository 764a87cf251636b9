import asyncio
import logging

import pytest
from telegram.error import BadRequest, Forbidden

from classifier import UrlClassifier
from config import MAX_FILE_SIZE, MESSAGES
from errors import FormatUnavailable, UpstreamUnavailable
from models import Outcome
from pipeline import RelayPipeline

MIB = 1024 * 1024
SHORTS_TEXT = "check this out https://youtube.com/shorts/abc123"


@pytest.fixture
def build(make_oracle, make_resolver, make_fetcher):
    def factory(oracle=None, resolver=None, fetcher=None):
        oracle = oracle or make_oracle()
        resolver = resolver or make_resolver()
        fetcher = fetcher or make_fetcher()
        pipeline = RelayPipeline(UrlClassifier(oracle), resolver, fetcher)
        return pipeline, oracle, resolver, fetcher
    return factory


async def test_scenario_a_delivers_video(build, make_request, file_manager):
    pipeline, oracle, resolver, fetcher = build()
    request = make_request(SHORTS_TEXT)

    outcome = await pipeline.handle(request)

    assert outcome is Outcome.DELIVERED
    assert oracle.calls == ["abc123"]
    assert resolver.calls == ["abc123"]
    assert request.gateway.names() == ["chat_action", "reply_video"]
    assert request.gateway.calls[0][1] == "upload_video"
    _, path, existed = request.gateway.calls[1]
    assert existed
    assert file_manager.cleaned == [path]


async def test_scenario_b_plain_text_is_rejected_without_network(build, make_request, file_manager):
    pipeline, oracle, resolver, fetcher = build()
    request = make_request("hello")

    outcome = await pipeline.handle(request)

    assert outcome is Outcome.REJECTED
    assert request.gateway.texts() == [MESSAGES["invalid_link"]]
    assert len(request.gateway.calls) == 1
    assert oracle.calls == []
    assert resolver.calls == []
    assert fetcher.downloads == []
    assert file_manager.created == []


async def test_not_shorts_is_rejected_without_download(build, make_request, make_oracle):
    pipeline, oracle, resolver, fetcher = build(oracle=make_oracle(result=False))
    request = make_request("https://www.youtube.com/watch?v=dQw4w9WgXcQ")

    outcome = await pipeline.handle(request)

    assert outcome is Outcome.REJECTED
    assert oracle.calls == ["dQw4w9WgXcQ"]
    assert request.gateway.texts() == [MESSAGES["invalid_link"]]
    assert resolver.calls == []
    assert fetcher.downloads == []


async def test_oracle_outage_looks_like_rejection_but_logs_warning(build, make_request, make_oracle, caplog):
    oracle = make_oracle(error=UpstreamUnavailable("connection reset"))
    pipeline, _, resolver, _ = build(oracle=oracle)
    request = make_request(SHORTS_TEXT)

    with caplog.at_level(logging.INFO, logger="pipeline"):
        outcome = await pipeline.handle(request)

    assert outcome is Outcome.REJECTED
    assert request.gateway.texts() == [MESSAGES["invalid_link"]]
    assert resolver.calls == []
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert warnings and "connection reset" in warnings[0].getMessage()


async def test_scenario_c_no_format_found(build, make_request, make_resolver, file_manager, caplog):
    resolver = make_resolver(error=FormatUnavailable("No such format found"))
    pipeline, _, _, fetcher = build(resolver=resolver)
    request = make_request(SHORTS_TEXT)

    with caplog.at_level(logging.ERROR, logger="pipeline"):
        outcome = await pipeline.handle(request)

    assert outcome is Outcome.FAILED
    assert "reply_video" not in request.gateway.names()
    [text] = request.gateway.texts()
    assert "No such format found" in text
    assert fetcher.downloads == []
    assert any("No such format found" in r.getMessage() for r in caplog.records)


async def test_scenario_d_payload_too_large(build, make_request, make_fetcher, file_manager):
    fetcher = make_fetcher(payload_size=80 * MIB)
    pipeline, _, _, _ = build(fetcher=fetcher)
    request = make_request(SHORTS_TEXT)

    outcome = await pipeline.handle(request)

    assert outcome is Outcome.REJECTED
    assert "reply_video" not in request.gateway.names()
    [text] = request.gateway.texts()
    assert "too big" in text
    assert file_manager.cleaned == file_manager.created
    assert len(file_manager.cleaned) == 1


async def test_size_is_checked_again_before_delivery(build, make_request, make_fetcher, file_manager):
    fetcher = make_fetcher(payload_size=MAX_FILE_SIZE + 1, enforce_limit=False)
    pipeline, _, _, _ = build(fetcher=fetcher)
    request = make_request(SHORTS_TEXT)

    outcome = await pipeline.handle(request)

    assert outcome is Outcome.REJECTED
    assert "reply_video" not in request.gateway.names()
    assert len(file_manager.cleaned) == 1


async def test_payload_at_exact_limit_is_delivered(build, make_request, make_fetcher):
    fetcher = make_fetcher(payload_size=MAX_FILE_SIZE)
    pipeline, _, _, _ = build(fetcher=fetcher)

    outcome = await pipeline.handle(make_request(SHORTS_TEXT))

    assert outcome is Outcome.DELIVERED


async def test_download_error_reports_description(build, make_request, make_fetcher, file_manager):
    fetcher = make_fetcher(error=UpstreamUnavailable("Error downloading video: HTTP 403"))
    pipeline, _, _, _ = build(fetcher=fetcher)
    request = make_request(SHORTS_TEXT)

    outcome = await pipeline.handle(request)

    assert outcome is Outcome.FAILED
    [text] = request.gateway.texts()
    assert "HTTP 403" in text
    assert len(file_manager.cleaned) == 1


async def test_blocked_user_gets_no_reply(build, make_request, file_manager):
    pipeline, _, _, _ = build()
    request = make_request(SHORTS_TEXT, video_error=Forbidden("Forbidden: bot was blocked by the user"))

    outcome = await pipeline.handle(request)

    assert outcome is Outcome.FAILED
    assert request.gateway.texts() == []
    assert len(file_manager.cleaned) == 1


async def test_other_delivery_errors_get_generic_reply(build, make_request, file_manager):
    pipeline, _, _, _ = build()
    request = make_request(SHORTS_TEXT, video_error=BadRequest("Wrong file identifier"))

    outcome = await pipeline.handle(request)

    assert outcome is Outcome.FAILED
    assert request.gateway.texts() == [MESSAGES["generic_error"]]
    assert len(file_manager.cleaned) == 1


async def test_unexpected_error_is_contained(build, make_request, make_fetcher, file_manager):
    fetcher = make_fetcher(error=RuntimeError("disk on fire"))
    pipeline, _, _, _ = build(fetcher=fetcher)
    request = make_request(SHORTS_TEXT)

    outcome = await pipeline.handle(request)

    assert outcome is Outcome.FAILED
    assert len(request.gateway.texts()) == 1
    assert len(file_manager.cleaned) == 1


async def test_failed_error_reply_does_not_propagate(build, make_request, make_resolver):
    resolver = make_resolver(error=UpstreamUnavailable("provider down"))
    pipeline, _, _, _ = build(resolver=resolver)
    request = make_request(SHORTS_TEXT, reply_error=Forbidden("Forbidden: bot was blocked by the user"))

    assert await pipeline.handle(request) is Outcome.FAILED


async def test_cancellation_still_cleans_up(build, make_request, file_manager):
    pipeline, _, _, _ = build()
    request = make_request(SHORTS_TEXT)
    started = asyncio.Event()

    async def slow_video(path, caption=None):
        started.set()
        await asyncio.sleep(10)

    request.gateway.reply_video = slow_video
    task = asyncio.ensure_future(pipeline.handle(request))
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert len(file_manager.cleaned) == 1
    assert file_manager.cleaned == file_manager.created
