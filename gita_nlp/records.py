"""
Immutable records handed from one pipeline stage to the next.

Every record carries the (chapter, verse) key of the verse it came from.
"""

from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class VerseRecord:
    chapter: int
    verse: int       # 1-based position within the chapter, by source order
    raw_text: str

    @property
    def key(self) -> Tuple[int, int]:
        return (self.chapter, self.verse)


@dataclass(frozen=True)
class NormalizedVerse:
    chapter: int
    verse: int
    tokens: Tuple[str, ...]

    @property
    def key(self) -> Tuple[int, int]:
        return (self.chapter, self.verse)


@dataclass(frozen=True)
class SentimentResult:
    chapter: int
    verse: int
    score: float
    n_matches: int   # 0 means no lexicon word was found in the verse

    @property
    def key(self) -> Tuple[int, int]:
        return (self.chapter, self.verse)


@dataclass(frozen=True)
class Topic:
    topic_id: int
    top_terms: Tuple[Tuple[str, float], ...]

    def label(self, n: int = 3) -> str:
        """Short label built from the n heaviest terms."""
        return "_".join(term for term, _ in self.top_terms[:n])


@dataclass(frozen=True)
class DocumentTopicDistribution:
    chapter: int
    verse: int
    proportions: Dict[int, float]
    fitted: bool = True

    @property
    def key(self) -> Tuple[int, int]:
        return (self.chapter, self.verse)

    @property
    def dominant_topic(self) -> int:
        return max(self.proportions, key=lambda t: (self.proportions[t], -t))


@dataclass(frozen=True)
class TopicModelResult:
    k: int
    seed: int
    topics: Tuple[Topic, ...]
    distributions: Tuple[DocumentTopicDistribution, ...]
    vocabulary_size: int
    n_fitted_documents: int


@dataclass(frozen=True)
class ImageLabel:
    """One (label, confidence) pair produced by the external image classifier."""
    label: str
    confidence: float
