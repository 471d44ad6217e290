"""Fetch raw transcript segments from the external transcript API."""

import logging

import httpx

from learning_buddy.config import get_settings
from learning_buddy.schemas.video import TranscriptFetchResult, TranscriptSegment
from learning_buddy.services.errors import TranscriptUnavailableError

logger = logging.getLogger(__name__)
settings = get_settings()

FALLBACK_TOPIC = "Placeholder Content"
FALLBACK_CONFIDENCE = 0.3
FALLBACK_SEGMENTS = [
    TranscriptSegment(
        start_time=0,
        duration=60,
        text=(
            "This is a placeholder transcript. The transcript service was unavailable, "
            "so no specific content is known for this video yet."
        ),
    ),
]


def _parse_seconds(value: object, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def parse_transcript_payload(payload: object) -> list[TranscriptSegment]:
    """Normalize `{"transcript": [{start|offset, duration|dur, text}]}` into segments."""
    if not isinstance(payload, dict) or not isinstance(payload.get("transcript"), list):
        raise TranscriptUnavailableError("Transcript payload missing 'transcript' list")

    segments = []
    for item in payload["transcript"]:
        if not isinstance(item, dict):
            continue
        start = _parse_seconds(item.get("start", item.get("offset")))
        raw_duration = item.get("duration", item.get("dur"))
        segments.append(
            TranscriptSegment(
                start_time=max(start, 0.0),
                duration=max(_parse_seconds(raw_duration), 0.0) if raw_duration is not None else None,
                text=str(item.get("text") or item.get("content") or ""),
            )
        )
    if not segments:
        raise TranscriptUnavailableError("Transcript payload contained no segments")
    return sorted(segments, key=lambda s: s.start_time)


class TranscriptClient:
    """HTTP client for the transcript source, with a fixed fallback transcript."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = base_url or settings.transcript_api_url
        self.timeout = timeout if timeout is not None else settings.transcript_timeout_seconds

    async def fetch_segments(self, video_id: str) -> list[TranscriptSegment]:
        """Raw segments from the source. Raises TranscriptUnavailableError on any failure."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    self.base_url,
                    params={"video_id": video_id},
                    headers={"Accept": "application/json", "User-Agent": "AI-Learning-Buddy/1.0"},
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as e:
            raise TranscriptUnavailableError(f"HTTP {e.response.status_code} from transcript API") from e
        except httpx.HTTPError as e:
            raise TranscriptUnavailableError(f"Transcript API unreachable: {e}") from e
        except ValueError as e:
            raise TranscriptUnavailableError("Transcript API returned invalid JSON") from e

        return parse_transcript_payload(payload)

    async def fetch(self, video_id: str) -> TranscriptFetchResult:
        """Segments for a video, substituting the fallback transcript when the source fails."""
        try:
            segments = await self.fetch_segments(video_id)
            logger.info("Fetched %d transcript segments for video %s", len(segments), video_id)
            return TranscriptFetchResult(video_id=video_id, segments=segments)
        except TranscriptUnavailableError as e:
            logger.warning("Transcript unavailable for video %s, using fallback: %s", video_id, e)
            return TranscriptFetchResult(
                video_id=video_id,
                segments=[s.model_copy() for s in FALLBACK_SEGMENTS],
                is_fallback=True,
            )
