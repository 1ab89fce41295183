"""
Lexicon polarity scoring with valence shifters.

Each verse is split into sentence-like chunks. Inside a chunk every lexicon
word contributes its weight, sign-flipped by an odd number of negators near
it and scaled by the amplifiers just before it; the chunk total is divided
by sqrt(word count). A verse scores the mean of its chunks.

The lexicon is data, not code: either the scaled VADER lexicon or any
``word,polarity`` table on disk.
"""

import logging
import math
import re
import unicodedata
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Mapping, Sequence, Tuple

import nltk
import pandas as pd
from vaderSentiment.vaderSentiment import BOOSTER_DICT, NEGATE, SentimentIntensityAnalyzer

from gita_nlp import io_utils, preprocessing
from gita_nlp.errors import InvalidInput
from gita_nlp.records import SentimentResult, VerseRecord

log = logging.getLogger(__name__)

SENTIMENT_TABLE = "sentiment.csv"
VADER_SCALE = 4.0        # VADER valences run from -4 to +4
WINDOW_BEFORE = 4
WINDOW_AFTER = 2

# any letters, so transliterations like "kṛṣṇa" stay one word
_WORD = re.compile(r"[^\W\d_]+(?:'[^\W\d_]+)*")
_SINGLE_WORD = re.compile(r"^[^\W\d_]+(?:'[^\W\d_]+)*$")
_SENTENCE_END = re.compile(r"[.!?;:]+")


# lexicon --------------------------------------------------------------------

def vader_lexicon(scale: float = VADER_SCALE) -> Dict[str, float]:
    """Single-word VADER entries rescaled into [-1, 1]."""
    raw = SentimentIntensityAnalyzer().lexicon
    return {w: v / scale for w, v in raw.items() if _SINGLE_WORD.match(w)}


def load_lexicon(path) -> Dict[str, float]:
    path = Path(path)
    sep = "\t" if path.suffix.lower() in (".tsv", ".tab") else ","
    try:
        df = pd.read_csv(path, sep=sep, encoding="utf-8", keep_default_na=False)
    except (OSError, pd.errors.ParserError) as e:
        raise InvalidInput(f"cannot read lexicon {path}: {e}") from e
    if not {"word", "polarity"} <= set(df.columns):
        raise InvalidInput(f"lexicon {path} needs 'word' and 'polarity' columns, has {list(df.columns)}")
    weights = pd.to_numeric(df["polarity"], errors="coerce")
    if weights.isna().any():
        bad = df.loc[weights.isna(), "word"].tolist()[:5]
        raise InvalidInput(f"lexicon {path} has non-numeric polarity for {bad}")
    return {str(w).strip().lower(): float(p) for w, p in zip(df["word"], weights) if str(w).strip()}


def resolve_lexicon(cfg) -> Dict[str, float]:
    choice = cfg.get("lexicon", "vader")
    if choice == "vader":
        return vader_lexicon()
    return load_lexicon(choice)


# valence shifters -----------------------------------------------------------

def _single_words(words: Iterable[str]):
    return (w for w in words if _SINGLE_WORD.match(w))


@dataclass(frozen=True)
class ValenceShifters:
    negators: FrozenSet[str] = field(default_factory=lambda: frozenset(_single_words(NEGATE)))
    amplifiers: Mapping[str, float] = field(
        default_factory=lambda: {w: v for w, v in BOOSTER_DICT.items() if _SINGLE_WORD.match(w)})
    before: int = WINDOW_BEFORE
    after: int = WINDOW_AFTER


def shifters_from_config(cfg) -> ValenceShifters:
    window = cfg.get("negation_window") or {}
    return ValenceShifters(before=window.get("before", WINDOW_BEFORE),
                           after=window.get("after", WINDOW_AFTER))


# scoring --------------------------------------------------------------------

def split_sentences(text: str, segmenter: str = "regex") -> List[str]:
    if segmenter == "nltk":
        try:
            nltk.data.find("tokenizers/punkt_tab")
        except LookupError:
            nltk.download("punkt_tab", quiet=True)
        chunks = nltk.sent_tokenize(text)
    else:
        chunks = _SENTENCE_END.split(text)
    return [c for c in chunks if _WORD.search(c)]


def _chunk_score(words: List[str], lexicon: Mapping[str, float], shifters: ValenceShifters):
    total, matches = 0.0, 0
    for i, word in enumerate(words):
        weight = lexicon.get(word)
        if weight is None:
            continue
        matches += 1
        before = words[max(0, i - shifters.before):i]
        after = words[i + 1:i + 1 + shifters.after]
        negations = sum(1 for w in before + after if w in shifters.negators)
        if negations % 2:
            weight = -weight
        # de-amplifiers shrink a weight towards 0 but never past it
        weight *= max(0.0, 1.0 + sum(shifters.amplifiers.get(w, 0.0) for w in before))
        total += weight
    return total / math.sqrt(len(words)), matches


def score_text(text, lexicon: Mapping[str, float], shifters: ValenceShifters = None,
               segmenter: str = "regex") -> Tuple[float, int]:
    """(score, number of lexicon matches) for one verse; no match scores 0.0."""
    if not isinstance(text, str):
        raise InvalidInput(f"expected verse text as str, got {type(text).__name__}")
    shifters = shifters or ValenceShifters()
    text = unicodedata.normalize("NFC", text)
    scored = [_chunk_score(_WORD.findall(chunk.lower()), lexicon, shifters)
              for chunk in split_sentences(text, segmenter)]
    matches = sum(m for _, m in scored)
    if not matches:
        return 0.0, 0
    return sum(s for s, _ in scored) / len(scored), matches


def score_verses(verses: Sequence[VerseRecord], lexicon: Mapping[str, float],
                 shifters: ValenceShifters = None, segmenter: str = "regex",
                 prepare=preprocessing.scoring_text) -> Tuple[SentimentResult, ...]:
    shifters = shifters or ValenceShifters()
    results = []
    for v in verses:
        score, matches = score_text(prepare(v.raw_text), lexicon, shifters, segmenter)
        results.append(SentimentResult(v.chapter, v.verse, score, matches))
    return tuple(results)


def corpus_sentiment(results: Sequence[SentimentResult], exclude_unmatched: bool = False) -> float:
    """Mean verse score. No-match verses count as 0 unless exclude_unmatched is set."""
    pool = [r.score for r in results if r.n_matches or not exclude_unmatched]
    if not pool:
        return 0.0
    return sum(pool) / len(pool)


def chapter_sentiment(results: Sequence[SentimentResult]) -> pd.DataFrame:
    df = pd.DataFrame([{"chapter": r.chapter, "score": r.score} for r in results],
                      columns=["chapter", "score"])
    return (df.groupby("chapter", sort=True)["score"]
              .agg(mean_score="mean", n_verses="size")
              .reset_index())


def run(cfg, verses):
    lexicon = resolve_lexicon(cfg)
    results = score_verses(verses, lexicon,
                           shifters=shifters_from_config(cfg),
                           segmenter=cfg.get("sentence_segmenter", "regex"))
    unmatched = sum(1 for r in results if not r.n_matches)
    log.info("scored %d verses with a %d-word lexicon; %d without any lexicon match",
             len(results), len(lexicon), unmatched)

    rows = [{"chapter": r.chapter, "verse": r.verse, "score": r.score, "n_matches": r.n_matches}
            for r in results]
    io_utils.write_table(rows, Path(cfg["intermediate_dir"], SENTIMENT_TABLE),
                         ["chapter", "verse", "score", "n_matches"])
    return results
