"""
Fetch verse text chapter by chapter and flatten it into VerseRecords.

Relies on:
    • requests for one GET per chapter
    • BeautifulSoup (lxml parser) to pull verse nodes out of the page
"""

import logging
from contextlib import closing
from pathlib import Path
from typing import Iterable, List, Protocol, Tuple

import requests
from bs4 import BeautifulSoup

from gita_nlp import io_utils
from gita_nlp.errors import InvalidInput, SourceUnavailable
from gita_nlp.records import VerseRecord

log = logging.getLogger(__name__)

N_CHAPTERS = 18
REQUEST_TIMEOUT = 25
BOILERPLATE_LABELS = ("Search",)
RAW_TABLE = "raw_verses.csv"
TABLE_COLUMNS = ["chapter", "verses"]
USER_AGENT = ("Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
              "(KHTML, like Gecko) Chrome/124.0 Safari/537.36")


class ChapterSource(Protocol):
    def fetch(self, chapter: int) -> List[str]:
        """Return the raw text fragments of one chapter in page order."""
        ...


class HttpChapterSource:
    """Chapter pages reached through a URL template such as ``.../chapter/{chapter}/``."""

    def __init__(self, url_template: str, verse_selector: str,
                 timeout: float = REQUEST_TIMEOUT, session=None):
        self.url_template = url_template
        self.verse_selector = verse_selector
        self.timeout = timeout
        # a caller-provided session is left open; its headers are never modified
        self._owns_session = session is None
        self.session = session or requests.Session()

    def close(self):
        if self._owns_session:
            self.session.close()

    def url_for(self, chapter: int) -> str:
        return self.url_template.format(chapter=chapter)

    def fetch(self, chapter: int) -> List[str]:
        url = self.url_for(chapter)
        log.info("fetching chapter %d: %s", chapter, url)
        try:
            response = self.session.get(url, headers={"User-Agent": USER_AGENT}, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise SourceUnavailable(chapter, str(e)) from e

        soup = BeautifulSoup(response.text, "lxml")
        fragments = [node.get_text(" ", strip=True) for node in soup.select(self.verse_selector)]
        log.debug("chapter %d: %d nodes matched %r", chapter, len(fragments), self.verse_selector)
        return fragments


def is_content(fragment, boilerplate: Iterable[str] = BOILERPLATE_LABELS) -> bool:
    if not isinstance(fragment, str):
        return False
    text = fragment.strip()
    if not text:
        return False
    return text.casefold() not in {b.strip().casefold() for b in boilerplate}


def _chapter_records(source: ChapterSource, chapter: int, boilerplate) -> Tuple[VerseRecord, ...]:
    fragments = source.fetch(chapter)
    kept = [f.strip() for f in fragments if is_content(f, boilerplate)]
    dropped = len(fragments) - len(kept)
    if dropped:
        log.info("chapter %d: dropped %d empty/boilerplate fragments", chapter, dropped)
    if not kept:
        # a silently missing chapter would shift every chapter-indexed result
        raise SourceUnavailable(chapter, "no verse text found")
    return tuple(VerseRecord(chapter, i, text) for i, text in enumerate(kept, start=1))


def load_corpus(source: ChapterSource, n_chapters: int = N_CHAPTERS,
                boilerplate: Iterable[str] = BOILERPLATE_LABELS) -> Tuple[VerseRecord, ...]:
    """All verses of chapters 1..n_chapters, in source order."""
    boilerplate = tuple(boilerplate)
    verses = tuple(record
                   for chapter in range(1, n_chapters + 1)
                   for record in _chapter_records(source, chapter, boilerplate))
    log.info("loaded %d verses from %d chapters", len(verses), n_chapters)
    return verses


def records_to_rows(verses):
    return [{"chapter": v.chapter, "verses": v.raw_text} for v in verses]


def rows_to_records(df, boilerplate: Iterable[str] = BOILERPLATE_LABELS) -> Tuple[VerseRecord, ...]:
    """Rebuild VerseRecords from a (chapter, verses) table; verse numbers follow row order."""
    boilerplate = tuple(boilerplate)
    counters = {}
    records = []
    for chapter, text in zip(df["chapter"], df["verses"]):
        if not is_content(text, boilerplate):
            continue
        try:
            chapter = int(chapter)
        except ValueError as e:
            raise InvalidInput(f"chapter value {chapter!r} is not an integer") from e
        counters[chapter] = counters.get(chapter, 0) + 1
        records.append(VerseRecord(chapter, counters[chapter], text.strip()))
    return tuple(records)


def run(cfg) -> Tuple[VerseRecord, ...]:
    cache = Path(cfg["intermediate_dir"], RAW_TABLE)
    if cfg.get("use_cache", True) and cache.exists():
        log.info("reading cached raw table %s", cache)
        df = io_utils.read_table(cache, TABLE_COLUMNS)
        return rows_to_records(df, cfg.get("boilerplate_labels", BOILERPLATE_LABELS))

    source = HttpChapterSource(cfg["source_url"], cfg["verse_selector"],
                               timeout=cfg.get("request_timeout", REQUEST_TIMEOUT))
    with closing(source):
        verses = load_corpus(source,
                             n_chapters=cfg.get("n_chapters", N_CHAPTERS),
                             boilerplate=cfg.get("boilerplate_labels", BOILERPLATE_LABELS))
    io_utils.write_table(records_to_rows(verses), cache, TABLE_COLUMNS)
    log.info("raw table written to %s", cache)
    return verses
