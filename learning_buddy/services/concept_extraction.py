"""
Concept extraction from conversation text.

Two interchangeable strategies share one output contract
(list[ExtractedConcept]):

- LexicalConceptExtractor: keyword matching against fixed vocabularies.
- EmbeddingConceptExtractor: cosine similarity between candidate phrases of
  the text and each vocabulary concept, keeping the best phrase per concept.
  Falls back to the lexical matcher per call when the embedding backend errors.

select_concept_extractor() picks one at startup based on backend health.
"""

import logging
import re
from typing import Protocol

import httpx
import numpy as np

from learning_buddy.config import Settings, get_settings
from learning_buddy.schemas.memory import ExtractedConcept
from learning_buddy.services.errors import EmbeddingBackendError

logger = logging.getLogger(__name__)

AI_CONCEPTS = [
    "artificial intelligence", "ai", "machine learning", "prompt engineering",
    "chatgpt", "large language model", "llm", "neural network", "training data",
    "bias", "ethics", "automation", "generative ai", "natural language processing",
    "deep learning", "algorithm", "data", "privacy", "security",
]

TEACHING_CONCEPTS = [
    "classroom management", "lesson planning", "assessment", "differentiation",
    "student engagement", "learning objectives", "curriculum", "standards",
    "formative assessment", "summative assessment", "scaffolding", "feedback",
    "collaboration", "critical thinking", "creativity", "problem solving",
]

GRADE_CONCEPTS = {
    "elementary": ["play-based learning", "hands-on activities", "visual learning"],
    "middle school": ["project-based learning", "peer collaboration", "identity development"],
    "high school": ["college prep", "career readiness", "independent learning"],
}

# (cue words, concept name, concept type, confidence)
STATE_CUES = [
    (("worried", "concerned", "afraid"), "concerns about AI", "emotional_state", 0.8),
    (("excited", "interested", "curious"), "enthusiasm for AI", "emotional_state", 0.8),
    (("confused", "don't understand"), "confusion", "learning_state", 0.9),
]

# Candidate phrases embedded per extraction
MAX_PHRASE_WORDS = 3
MAX_CANDIDATE_PHRASES = 1024
_SENTENCE_SPLIT = re.compile(r"[.!?;:\n]+")
_WORD = re.compile(r"[\w'-]+")


def _contains_term(lower_text: str, term: str) -> bool:
    return re.search(rf"(?<!\w){re.escape(term)}(?!\w)", lower_text) is not None


def vocabulary(grade_level: str | None = None) -> list[tuple[str, str, float]]:
    """(name, type, keyword confidence) for every concept in play."""
    terms = [(c, "ai_concept", 0.9) for c in AI_CONCEPTS]
    terms += [(c, "teaching_concept", 0.8) for c in TEACHING_CONCEPTS]
    if grade_level and grade_level in GRADE_CONCEPTS:
        terms += [(c, "grade_specific", 0.7) for c in GRADE_CONCEPTS[grade_level]]
    return terms


def detect_states(lower_text: str) -> list[ExtractedConcept]:
    """Emotional and learning-state cues; shared by both strategies."""
    found = []
    for cues, name, concept_type, confidence in STATE_CUES:
        if any(cue in lower_text for cue in cues):
            found.append(ExtractedConcept(name=name, type=concept_type, confidence=confidence, method="keyword"))
    return found


class ConceptExtractor(Protocol):
    """Anything that turns text into concepts."""

    method: str

    async def extract(self, text: str, grade_level: str | None = None) -> list[ExtractedConcept]: ...


class LexicalConceptExtractor:
    """Whole-phrase keyword matching against the fixed vocabularies."""

    method = "keyword"

    async def extract(self, text: str, grade_level: str | None = None) -> list[ExtractedConcept]:
        lower_text = text.lower()
        concepts = [
            ExtractedConcept(name=name, type=concept_type, confidence=confidence, method=self.method)
            for name, concept_type, confidence in vocabulary(grade_level)
            if _contains_term(lower_text, name)
        ]
        return concepts + detect_states(lower_text)


class EmbeddingClient:
    """Minimal client for an OpenAI-compatible /embeddings endpoint."""

    def __init__(self, base_url: str, model: str, api_key: str | None = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_key = api_key
        self.timeout = timeout

    async def embed(self, texts: list[str]) -> np.ndarray:
        """Embed a batch of texts into an (N, D) float array."""
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/embeddings",
                    json={"model": self.model, "input": texts},
                    headers=headers,
                )
                response.raise_for_status()
                payload = response.json()
            data = sorted(payload["data"], key=lambda item: item.get("index", 0))
            vectors = np.asarray([item["embedding"] for item in data], dtype=np.float32)
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            raise EmbeddingBackendError(f"Embedding request failed: {e}") from e

        if vectors.ndim != 2 or vectors.shape[0] != len(texts):
            raise EmbeddingBackendError(
                f"Expected {len(texts)} embeddings, got shape {vectors.shape}"
            )
        return vectors

    async def health_check(self) -> bool:
        """True when a test embedding round-trips."""
        try:
            await self.embed(["health check"])
            return True
        except EmbeddingBackendError:
            logger.warning("Embedding backend at %s failed health check", self.base_url)
            return False


def cosine_similarity_matrix(rows: np.ndarray, columns: np.ndarray) -> np.ndarray:
    """Cosine similarity of every row of one matrix against every row of another."""
    row_norms = np.linalg.norm(rows, axis=1, keepdims=True)
    column_norms = np.linalg.norm(columns, axis=1, keepdims=True)
    rows = rows / np.where(row_norms == 0, 1.0, row_norms)
    columns = columns / np.where(column_norms == 0, 1.0, column_norms)
    return rows @ columns.T


def candidate_phrases(text: str, max_words: int = MAX_PHRASE_WORDS) -> list[str]:
    """Word n-grams up to max_words, plus each longer sentence whole.

    Duplicates keep their first position. At most MAX_CANDIDATE_PHRASES are returned.
    """
    phrases: list[str] = []
    for sentence in _SENTENCE_SPLIT.split(text):
        words = _WORD.findall(sentence.lower())
        for size in range(1, max_words + 1):
            for start in range(len(words) - size + 1):
                phrases.append(" ".join(words[start:start + size]))
        if len(words) > max_words:
            phrases.append(" ".join(words))
    return list(dict.fromkeys(phrases))[:MAX_CANDIDATE_PHRASES]


class EmbeddingConceptExtractor:
    """Semantic matching of text against the concept vocabulary."""

    method = "embedding"

    def __init__(
        self,
        client: EmbeddingClient,
        threshold: float = 0.75,
        fallback: ConceptExtractor | None = None,
    ):
        self.client = client
        self.threshold = threshold
        self.fallback = fallback or LexicalConceptExtractor()
        self._vocab_cache: dict[str | None, tuple[list[tuple[str, str, float]], np.ndarray]] = {}

    async def _vocabulary_vectors(self, grade_level: str | None) -> tuple[list[tuple[str, str, float]], np.ndarray]:
        key = grade_level if grade_level in GRADE_CONCEPTS else None
        if key not in self._vocab_cache:
            terms = vocabulary(key)
            vectors = await self.client.embed([name for name, _, _ in terms])
            self._vocab_cache[key] = (terms, vectors)
        return self._vocab_cache[key]

    async def extract(self, text: str, grade_level: str | None = None) -> list[ExtractedConcept]:
        phrases = candidate_phrases(text)
        if not phrases:
            return detect_states(text.lower())
        try:
            terms, vectors = await self._vocabulary_vectors(grade_level)
            phrase_vectors = await self.client.embed(phrases)
        except EmbeddingBackendError:
            logger.warning("Embedding extraction failed, using keyword fallback", exc_info=True)
            return await self.fallback.extract(text, grade_level)

        # Best-matching phrase per vocabulary concept
        similarities = cosine_similarity_matrix(vectors, phrase_vectors).max(axis=1)
        ranked = sorted(zip(terms, similarities), key=lambda pair: pair[1], reverse=True)
        concepts = [
            ExtractedConcept(name=name, type=concept_type, confidence=round(float(score), 4), method=self.method)
            for (name, concept_type, _), score in ranked
            if score >= self.threshold
        ]
        return concepts + detect_states(text.lower())


async def select_concept_extractor(settings: Settings | None = None) -> ConceptExtractor:
    """Embedding extractor when its backend is configured and healthy, keywords otherwise."""
    settings = settings or get_settings()
    if not settings.embedding_api_url:
        logger.info("No embedding backend configured, using keyword concept extraction")
        return LexicalConceptExtractor()

    client = EmbeddingClient(
        base_url=settings.embedding_api_url,
        model=settings.embedding_model,
        api_key=settings.embedding_api_key,
        timeout=settings.embedding_timeout_seconds,
    )
    if await client.health_check():
        logger.info("Using embedding concept extraction with model %s", settings.embedding_model)
        return EmbeddingConceptExtractor(client, threshold=settings.embedding_similarity_threshold)

    logger.warning("Embedding backend unavailable at startup, using keyword concept extraction")
    return LexicalConceptExtractor()
