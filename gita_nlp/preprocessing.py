"""
Clean, lemmatise and stop-word filter English verse text.

Relies on:
    • NLTK WordNet lemmatiser and English stop-word list (default)
    • gensim's stop-word list (optional)
    • spaCy en_core_web_sm lemmatiser (optional)

Steps run in a fixed order; each one assumes the earlier ones already ran:
contractions -> whitespace -> glued words -> punctuation -> lowercase
-> lemmas -> stop-words.
"""

import logging
import re
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

import nltk

from gita_nlp import io_utils
from gita_nlp.errors import InvalidInput
from gita_nlp.records import NormalizedVerse, VerseRecord

log = logging.getLogger(__name__)

CLEAN_TABLE = "clean_verses.csv"

NLTK_RESOURCES = {
    "wordnet": "corpora/wordnet",
    "omw-1.4": "corpora/omw-1.4",
    "stopwords": "corpora/stopwords",
}

# whole-word forms first; the generic suffix rules below catch the rest
CONTRACTIONS = {
    "won't": "will not",
    "can't": "cannot",
    "shan't": "shall not",
    "ain't": "is not",
    "let's": "let us",
    "'tis": "it is",
    "'twas": "it was",
    "o'er": "over",
    "e'er": "ever",
    "ne'er": "never",
    "e'en": "even",
    "th'": "the",
}
SUFFIXES = [
    (r"n't\b", " not"),
    (r"'re\b", " are"),
    (r"'ll\b", " will"),
    (r"'ve\b", " have"),
    (r"'m\b", " am"),
    (r"'d\b", " would"),
    (r"(?<=\b[Ii]t)'s\b", " is"),
    (r"(?<=\b[Hh]e)'s\b", " is"),
    (r"(?<=\b[Ss]he)'s\b", " is"),
    (r"(?<=\b[Tt]hat)'s\b", " is"),
    (r"(?<=\b[Tt]here)'s\b", " is"),
    (r"(?<=\b[Ww]hat)'s\b", " is"),
]
APOSTROPHES = re.compile(r"[‘’ʼ`]")
_WHOLE = re.compile(
    r"(?<![\w'])(" + "|".join(re.escape(c) for c in sorted(CONTRACTIONS, key=len, reverse=True)) + r")(?!\w)",
    re.IGNORECASE)
_SUFFIXES = [(re.compile(p), r) for p, r in SUFFIXES]
_GLUED = re.compile(r"(?<=[a-z])(?=[A-Z])")
_PUNCT = re.compile(r"[^\w\s]|_")
_SPACE = re.compile(r"\s+")


def _ensure_nltk(*names):
    for name in names:
        try:
            nltk.data.find(NLTK_RESOURCES[name])
        except LookupError:
            log.info("downloading NLTK resource %s", name)
            nltk.download(name, quiet=True)


def _check_text(text):
    if not isinstance(text, str):
        raise InvalidInput(f"expected verse text as str, got {type(text).__name__}")


# individual steps -----------------------------------------------------------

def expand_contractions(text: str) -> str:
    text = APOSTROPHES.sub("'", text)

    def _whole(m):
        out = CONTRACTIONS[m.group(0).lower()]
        return out[0].upper() + out[1:] if m.group(0).lstrip("'")[0].isupper() else out

    text = _WHOLE.sub(_whole, text)
    for pattern, repl in _SUFFIXES:
        text = pattern.sub(repl, text)
    return text


def collapse_whitespace(text: str) -> str:
    return _SPACE.sub(" ", text).strip()


def split_glued_words(text: str) -> str:
    """'devotionArjuna' -> 'devotion Arjuna' (scraped nodes often lose the space)."""
    return _GLUED.sub(" ", text)


def strip_punctuation(text: str) -> str:
    return collapse_whitespace(_PUNCT.sub(" ", text))


def clean_text(text: str) -> str:
    """Steps 1-5: the cleaned, lowercased surface text."""
    _check_text(text)
    text = collapse_whitespace(expand_contractions(text))
    text = split_glued_words(text)
    return strip_punctuation(text).lower()


def scoring_text(text: str) -> str:
    """Like clean_text but keeps sentence punctuation, for sentence-level scoring."""
    _check_text(text)
    text = collapse_whitespace(expand_contractions(text))
    return split_glued_words(text).lower()


# lemmas and stop-words ------------------------------------------------------

def load_stopwords(source: str = "nltk", extra: Iterable[str] = ()) -> frozenset:
    if source == "nltk":
        _ensure_nltk("stopwords")
        from nltk.corpus import stopwords
        words = set(stopwords.words("english"))
    elif source == "gensim":
        from gensim.parsing.preprocessing import STOPWORDS
        words = set(STOPWORDS)
    else:
        raise ValueError(f"unknown stop-word source {source!r}")
    # the list itself contains contractions; strip them the same way verse text is stripped
    words |= {w for s in list(words) for w in strip_punctuation(expand_contractions(s)).lower().split()}
    words |= {w.lower() for w in extra}
    return frozenset(words)


class Normalizer:
    """Turns verse text into analysis-ready tokens. Same text in, same tokens out."""

    def __init__(self, lemmatizer: str = "wordnet", stopword_source: str = "nltk",
                 extra_stopwords: Iterable[str] = ()):
        self.stopwords = load_stopwords(stopword_source, extra_stopwords)
        if lemmatizer == "wordnet":
            _ensure_nltk("wordnet", "omw-1.4")
            from nltk.stem import WordNetLemmatizer
            self._wn = WordNetLemmatizer()
            self._lemmatize = self._wordnet_lemmas
        elif lemmatizer == "spacy":
            import spacy
            self._nlp = spacy.load("en_core_web_sm", disable=["parser", "ner"])
            self._lemmatize = self._spacy_lemmas
        else:
            raise ValueError(f"unknown lemmatizer {lemmatizer!r}")
        self.lemmatizer = lemmatizer

    def _wordnet_step(self, word: str) -> str:
        lemma = self._wn.lemmatize(word, "v")
        if lemma == word:
            lemma = self._wn.lemmatize(word, "n")
        return lemma

    def _wordnet_lemma(self, word: str) -> str:
        """Lemmatise until the word stops changing: offerings -> offering -> offer."""
        seen = {word}
        # stop-words are dropped in the next step; lemmatising them gives 'was' -> 'wa'
        while word not in self.stopwords:
            lemma = self._wordnet_step(word)
            if lemma in seen:
                break
            seen.add(lemma)
            word = lemma
        return word

    def _wordnet_lemmas(self, words: List[str]) -> List[str]:
        return [self._wordnet_lemma(w) for w in words]

    def _spacy_lemmas(self, words: List[str]) -> List[str]:
        if not words:
            return []
        return [strip_punctuation(t.lemma_.lower()) or t.text
                for t in self._nlp(" ".join(words))
                if not (t.is_punct or t.is_space)]

    def tokens(self, text: str) -> List[str]:
        words = clean_text(text).split()
        lemmas = self._lemmatize(words)
        return [w for w in lemmas if w and w not in self.stopwords]

    def normalize(self, verses: Sequence[VerseRecord]) -> Tuple[NormalizedVerse, ...]:
        out = tuple(NormalizedVerse(v.chapter, v.verse, tuple(self.tokens(v.raw_text)))
                    for v in verses)
        empty = sum(1 for n in out if not n.tokens)
        if empty:
            log.info("%d verses have no tokens left after stop-word removal", empty)
        return out


def from_config(cfg) -> Normalizer:
    return Normalizer(lemmatizer=cfg.get("lemmatizer", "wordnet"),
                      stopword_source=cfg.get("stopwords", "nltk"),
                      extra_stopwords=cfg.get("extra_stopwords") or ())


def run(cfg, verses):
    normalizer = from_config(cfg)
    normalized = normalizer.normalize(verses)
    log.info("normalized %d verses (%s lemmatizer)", len(normalized), normalizer.lemmatizer)

    rows = [{"chapter": n.chapter, "verses": " ".join(n.tokens)} for n in normalized]
    io_utils.write_table(rows, Path(cfg["intermediate_dir"], CLEAN_TABLE), ["chapter", "verses"])
    return normalized
