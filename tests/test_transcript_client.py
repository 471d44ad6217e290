"""Unit tests for the transcript API client."""

import httpx
import pytest

from learning_buddy.services import transcript_client as transcript_module
from learning_buddy.services.errors import TranscriptUnavailableError
from learning_buddy.services.transcript_client import (
    FALLBACK_SEGMENTS,
    TranscriptClient,
    parse_transcript_payload,
)


def use_transport(monkeypatch, handler) -> list[httpx.Request]:
    """Route the module's httpx clients through a mock handler; returns seen requests."""
    seen: list[httpx.Request] = []
    real_client = httpx.AsyncClient

    def recording_handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    def factory(**kwargs):
        return real_client(transport=httpx.MockTransport(recording_handler), **kwargs)

    monkeypatch.setattr(transcript_module.httpx, "AsyncClient", factory)
    return seen


@pytest.mark.unit
class TestParsePayload:
    def test_accepts_start_or_offset_keys(self) -> None:
        segments = parse_transcript_payload(
            {
                "transcript": [
                    {"offset": "5.5", "dur": "2", "text": "second"},
                    {"start": 0, "duration": 5.5, "text": "first"},
                ]
            }
        )

        assert [s.text for s in segments] == ["first", "second"]
        assert segments[1].start_time == 5.5
        assert segments[1].duration == 2.0

    def test_missing_duration_stays_unknown(self) -> None:
        segments = parse_transcript_payload({"transcript": [{"start": 1, "text": "x"}]})

        assert segments[0].duration is None

    def test_rejects_payload_without_transcript(self) -> None:
        with pytest.raises(TranscriptUnavailableError):
            parse_transcript_payload({"error": "nope"})

    def test_rejects_empty_transcript(self) -> None:
        with pytest.raises(TranscriptUnavailableError):
            parse_transcript_payload({"transcript": []})


@pytest.mark.unit
class TestTranscriptClient:
    async def test_fetch_returns_segments(self, monkeypatch) -> None:
        seen = use_transport(
            monkeypatch,
            lambda request: httpx.Response(200, json={"transcript": [{"start": 0, "duration": 4, "text": "hi"}]}),
        )
        client = TranscriptClient(base_url="http://transcripts.test/api/transcript", timeout=1)

        result = await client.fetch("vid1")

        assert result.is_fallback is False
        assert [s.text for s in result.segments] == ["hi"]
        assert seen[0].url.params["video_id"] == "vid1"

    async def test_http_error_uses_fallback(self, monkeypatch) -> None:
        use_transport(monkeypatch, lambda request: httpx.Response(503))
        client = TranscriptClient(base_url="http://transcripts.test/api/transcript", timeout=1)

        result = await client.fetch("vid1")

        assert result.is_fallback is True
        assert [s.text for s in result.segments] == [s.text for s in FALLBACK_SEGMENTS]

    async def test_invalid_json_uses_fallback(self, monkeypatch) -> None:
        use_transport(monkeypatch, lambda request: httpx.Response(200, text="<html>"))
        client = TranscriptClient(base_url="http://transcripts.test/api/transcript", timeout=1)

        result = await client.fetch("vid1")

        assert result.is_fallback is True

    async def test_fetch_segments_raises_on_connection_error(self, monkeypatch) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        use_transport(monkeypatch, refuse)
        client = TranscriptClient(base_url="http://transcripts.test/api/transcript", timeout=1)

        with pytest.raises(TranscriptUnavailableError):
            await client.fetch_segments("vid1")
