"""Merge short transcript segments into topic-labelled content chunks."""

import math
import re
from dataclasses import dataclass, field

from learning_buddy.config import get_settings
from learning_buddy.schemas.video import ChunkDraft, TranscriptSegment

DEFAULT_TOPIC = "Educational Content"

# Ordered: the first category with a matching phrase names the chunk.
TOPIC_CATEGORIES: list[tuple[str, tuple[str, ...]]] = [
    ("Course Introduction", ("welcome", "introduction")),
    ("Prompt Engineering Fundamentals", ("prompt engineering",)),
    ("Lesson Planning with AI", ("lesson plan",)),
    ("Creating Assessments", ("assessment",)),
    ("Student Engagement Strategies", ("student engagement",)),
    ("Differentiated Instruction", ("differentiated",)),
    ("Common Mistakes to Avoid", ("mistake", "avoid")),
    ("Advanced Techniques", ("advanced",)),
    ("Classroom Implementation", ("classroom",)),
    ("Ethics and Responsible Use", ("ethics", "responsible")),
    ("Practical Examples", ("practice", "example")),
]

KEYWORD_VOCABULARY: list[str] = [
    "prompt", "engineering", "ai", "education", "teaching", "learning",
    "student", "classroom", "lesson", "assessment", "curriculum",
    "strategy", "technique", "example", "practice", "implementation",
]


@dataclass
class ChunkingPolicy:
    """Window sizing and labelling rules. Thresholds are tunable, not invariants."""

    target_seconds: float = 75
    min_seconds: float = 45
    max_seconds: float = 90
    max_segments: int = 20
    default_segment_seconds: float = 3
    max_keywords: int = 8
    confidence: float = 0.85
    topic_categories: list[tuple[str, tuple[str, ...]]] = field(default_factory=lambda: list(TOPIC_CATEGORIES))
    keyword_vocabulary: list[str] = field(default_factory=lambda: list(KEYWORD_VOCABULARY))

    @classmethod
    def from_settings(cls) -> "ChunkingPolicy":
        settings = get_settings()
        return cls(
            target_seconds=settings.chunk_target_seconds,
            min_seconds=settings.chunk_min_seconds,
            max_seconds=settings.chunk_max_seconds,
            max_segments=settings.chunk_max_segments,
            default_segment_seconds=settings.chunk_default_segment_seconds,
            max_keywords=settings.chunk_max_keywords,
        )


def extract_topic(text: str, policy: ChunkingPolicy) -> str:
    lower_text = text.lower()
    for topic, phrases in policy.topic_categories:
        if any(phrase in lower_text for phrase in phrases):
            return topic
    return DEFAULT_TOPIC


def extract_keywords(text: str, policy: ChunkingPolicy) -> list[str]:
    words = [w for w in re.split(r"\W+", text.lower()) if w]
    found = [term for term in policy.keyword_vocabulary if any(term in word for word in words)]
    return found[: policy.max_keywords]


def _segment_end(segments: list[TranscriptSegment], index: int, policy: ChunkingPolicy) -> float:
    segment = segments[index]
    if segment.duration is not None:
        return segment.start_time + segment.duration
    if index + 1 < len(segments) and segments[index + 1].start_time > segment.start_time:
        return segments[index + 1].start_time
    return segment.start_time + policy.default_segment_seconds


def _finalize(window: list[tuple[float, float, str]], policy: ChunkingPolicy) -> ChunkDraft:
    text = " ".join(part.strip() for _, _, part in window if part.strip())
    return ChunkDraft(
        start_time=math.floor(window[0][0]),
        end_time=math.ceil(window[-1][1]),
        content=text,
        topic=extract_topic(text, policy),
        keywords=extract_keywords(text, policy),
        confidence=policy.confidence,
        segment_count=len(window),
    )


def chunk_segments(segments: list[TranscriptSegment], policy: ChunkingPolicy | None = None) -> list[ChunkDraft]:
    """
    Merge ordered raw segments into windows of roughly target_seconds.

    A window closes once it is at least min_seconds long and has either
    reached target_seconds or holds max_segments segments. A segment that
    would stretch a window past max_seconds starts a new window instead, as
    long as the current one already meets the minimum. The final partial
    window is always kept, so only the last chunk may be shorter than
    min_seconds.
    """
    policy = policy or ChunkingPolicy.from_settings()
    windows: list[list[tuple[float, float, str]]] = []
    current: list[tuple[float, float, str]] = []

    for index, segment in enumerate(segments):
        start = segment.start_time
        end = _segment_end(segments, index, policy)

        if current:
            window_start = current[0][0]
            current_duration = current[-1][1] - window_start
            if end - window_start > policy.max_seconds and current_duration >= policy.min_seconds:
                windows.append(current)
                current = []

        current.append((start, end, segment.text))
        duration = end - current[0][0]
        if duration >= policy.min_seconds and (
            duration >= policy.target_seconds or len(current) >= policy.max_segments
        ):
            windows.append(current)
            current = []

    if current:
        windows.append(current)

    drafts = [_finalize(window, policy) for window in windows]

    # Rounding outward can make neighbours overlap by a second; keep [start, end) disjoint.
    for previous, following in zip(drafts, drafts[1:]):
        if following.start_time < previous.end_time:
            previous.end_time = max(following.start_time, previous.start_time + 1)
    return drafts
