"""
End-to-end tests for provider.runtime.EnricherRuntime.

TMDB, the image CDN and meta-core are mocked with respx; media files,
plugin output and the catalog cache live under tmp_path.
"""

import json

import httpx
import pytest
import respx

from provider.config import ConfigStore, ProviderSettings
from provider.models import ProcessRequest
from provider.runtime import EnricherRuntime, work_item_from_request
from tmdb.client import BASE_URL, IMAGE_BASE_URL, TmdbClient
from validation.config import EnricherConfig
from worker.models import CompletionStatus
from worker.sink import RecordingSink

META_CORE = "http://meta-core:9000"
STORE_REF = "bafkreistoreref"
POSTER = b"\xff\xd8poster-bytes"


@pytest.fixture
def media_file(tmp_path):
    path = tmp_path / "files" / "Sintel.2010.mkv"
    path.parent.mkdir()
    path.write_bytes(b"matroska" * 64)
    return str(path)


@pytest.fixture
def settings(tmp_path):
    return ProviderSettings(
        cache_dir=str(tmp_path / "cache"),
        output_path=str(tmp_path / "output"),
        webdav_url=None,
        api_key=None,
    )


def _request(media_file: str, **meta) -> ProcessRequest:
    return ProcessRequest(
        taskId="task-1",
        cid=STORE_REF,
        filePath=media_file,
        callbackUrl="http://meta-sort:8180/callback",
        metaCoreUrl=META_CORE,
        existingMeta={"fileType": "video", "fileName": "Sintel 2010", "movieYear": "2010", **meta},
    )


def test_work_item_from_request(media_file):
    item = work_item_from_request(_request(media_file, imdbid="tt1727587"))
    assert item.task_id == "task-1"
    assert item.cid == STORE_REF
    assert item.attributes.imdb_id == "tt1727587"


@pytest.mark.asyncio
async def test_full_run_writes_store_and_artifact(settings, media_file, sintel_payload, tmp_path):
    store = ConfigStore(EnricherConfig(apiKey="abcdef1234567890"))
    runtime = EnricherRuntime(settings, config_store=store)
    sink = RecordingSink()

    with respx.mock:
        search = respx.get(f"{BASE_URL}/search/movie").mock(
            return_value=httpx.Response(200, json={"results": [{"id": 45745}]})
        )
        respx.get(f"{BASE_URL}/movie/45745").mock(return_value=httpx.Response(200, json=sintel_payload))
        respx.get(f"{IMAGE_BASE_URL}/sintel.jpg").mock(return_value=httpx.Response(200, content=POSTER))
        merge = respx.patch(f"{META_CORE}/meta/{STORE_REF}").mock(return_value=httpx.Response(200))
        adds = respx.post(url__startswith=f"{META_CORE}/meta/{STORE_REF}/_add/").mock(
            return_value=httpx.Response(200)
        )
        sets = respx.put(url__startswith=f"{META_CORE}/meta/{STORE_REF}/").mock(
            return_value=httpx.Response(200)
        )

        try:
            event = await runtime.run(_request(media_file), sink)
        finally:
            await runtime.aclose()

    assert event.status is CompletionStatus.COMPLETED
    assert sink.events == [event]
    assert search.calls[0].request.url.params["query"] == "Sintel"

    merged = json.loads(merge.calls[0].request.content)
    assert merged["tmdbid"] == "45745"
    assert merged["movieYear"] == "2010"
    assert adds.call_count == 3  # genre, studio, verified tag

    poster_name = "Sintel (2010)[tmdb45745]_poster.jpg"
    assert (tmp_path / "output" / poster_name).read_bytes() == POSTER
    put_values = [json.loads(call.request.content)["value"] for call in sets.calls]
    assert f"plugin/tmdb/{poster_name}" in put_values


@pytest.mark.asyncio
async def test_second_run_is_served_from_cache(settings, media_file, sintel_payload):
    runtime = EnricherRuntime(settings, config_store=ConfigStore(EnricherConfig(apiKey="abcdef1234567890")))

    with respx.mock:
        search = respx.get(f"{BASE_URL}/search/movie").mock(
            return_value=httpx.Response(200, json={"results": [{"id": 45745}]})
        )
        respx.get(f"{BASE_URL}/movie/45745").mock(return_value=httpx.Response(200, json=sintel_payload))
        image = respx.get(f"{IMAGE_BASE_URL}/sintel.jpg").mock(return_value=httpx.Response(200, content=POSTER))
        respx.route(host="meta-core").mock(return_value=httpx.Response(200))

        try:
            first = await runtime.run(_request(media_file), RecordingSink())
            second = await runtime.run(_request(media_file), RecordingSink())
        finally:
            await runtime.aclose()

    assert first.status is second.status is CompletionStatus.COMPLETED
    assert search.call_count == 1
    assert image.call_count == 1


@pytest.mark.asyncio
async def test_run_without_api_key_is_skipped(settings, media_file):
    runtime = EnricherRuntime(settings)

    with respx.mock:
        try:
            event = await runtime.run(_request(media_file), RecordingSink())
        finally:
            await runtime.aclose()

    assert event.status is CompletionStatus.SKIPPED
    assert event.reason == "No API key configured"


@pytest.mark.asyncio
async def test_submit_reports_to_callback(settings, media_file):
    runtime = EnricherRuntime(settings)

    with respx.mock:
        callback = respx.post("http://meta-sort:8180/callback").mock(return_value=httpx.Response(200))
        try:
            task = runtime.submit(_request(media_file, fileType="audio"))
            assert runtime.pending == 1
            await task
        finally:
            await runtime.aclose()

    assert runtime.pending == 0
    body = json.loads(callback.calls[0].request.content)
    assert body["taskId"] == "task-1"
    assert body["status"] == "skipped"


@pytest.mark.asyncio
async def test_setup_failure_still_reports_once(settings, media_file, monkeypatch):
    def broken_client(config):
        raise UnicodeEncodeError("ascii", "é", 0, 1, "ordinal not in range(128)")

    monkeypatch.setattr(TmdbClient, "from_config", broken_client)
    runtime = EnricherRuntime(settings, config_store=ConfigStore(EnricherConfig(apiKey="abcdef1234567890")))
    sink = RecordingSink()

    with respx.mock:
        try:
            event = await runtime.run(_request(media_file), sink)
        finally:
            await runtime.aclose()

    assert len(sink.events) == 1
    assert sink.events[0] is event
    assert event.task_id == "task-1"
    assert event.status is CompletionStatus.FAILED
    assert "ascii" in event.error
