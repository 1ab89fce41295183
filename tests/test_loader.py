import pandas as pd
import pytest
import requests

from gita_nlp import loader
from gita_nlp.errors import InvalidInput, SourceUnavailable


class StubResponse:
    def __init__(self, text, status=200):
        self.text = text
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")


class StubSession:
    """Maps URL -> HTML; anything unknown is a 404."""

    def __init__(self, pages):
        self.pages = pages
        self.headers = {}
        self.calls = []
        self.sent_headers = []
        self.closed = False

    def get(self, url, headers=None, timeout=None):
        self.calls.append(url)
        self.sent_headers.append(headers or {})
        if url not in self.pages:
            return StubResponse("", status=404)
        return StubResponse(self.pages[url])

    def close(self):
        self.closed = True


def _page(*verses):
    return "<html><body>" + "".join(f'<div class="verse">{v}</div>' for v in verses) + "</body></html>"


URL = "https://example.invalid/chapter/{chapter}/"


def test_empty_and_search_nodes_are_dropped():
    session = StubSession({URL.format(chapter=1): _page("", "Search", "Dhritarashtra said: O Sanjay...",
                                                        "   ", "Sanjay said: ...")})
    source = loader.HttpChapterSource(URL, "div.verse", session=session)
    verses = loader.load_corpus(source, n_chapters=1)
    assert [v.raw_text for v in verses] == ["Dhritarashtra said: O Sanjay...", "Sanjay said: ..."]
    assert [v.key for v in verses] == [(1, 1), (1, 2)]


def test_chapters_are_loaded_in_order():
    session = StubSession({URL.format(chapter=1): _page("one a", "one b"),
                           URL.format(chapter=2): _page("two a")})
    verses = loader.load_corpus(loader.HttpChapterSource(URL, "div.verse", session=session), n_chapters=2)
    assert [(v.chapter, v.verse, v.raw_text) for v in verses] == [
        (1, 1, "one a"), (1, 2, "one b"), (2, 1, "two a")]
    assert session.calls == [URL.format(chapter=1), URL.format(chapter=2)]


def test_missing_chapter_aborts_the_load():
    session = StubSession({URL.format(chapter=1): _page("one a")})
    source = loader.HttpChapterSource(URL, "div.verse", session=session)
    with pytest.raises(SourceUnavailable) as exc:
        loader.load_corpus(source, n_chapters=3)
    assert exc.value.chapter == 2
    # fail fast: chapter 3 is never requested
    assert URL.format(chapter=3) not in session.calls


def test_chapter_with_only_boilerplate_aborts():
    session = StubSession({URL.format(chapter=1): _page("Search", "")})
    with pytest.raises(SourceUnavailable):
        loader.load_corpus(loader.HttpChapterSource(URL, "div.verse", session=session), n_chapters=1)


def test_is_content():
    assert loader.is_content("Arjuna said")
    assert not loader.is_content("  search ")
    assert not loader.is_content("")
    assert not loader.is_content(None)
    assert loader.is_content("Search", boilerplate=())


def test_run_reads_cached_table(tiny_cfg):
    verses = loader.run(tiny_cfg)
    assert len(verses) == 9
    assert [v.key for v in verses[:4]] == [(1, 1), (1, 2), (1, 3), (2, 1)]


def test_run_fetches_then_caches(tiny_cfg, tmp_path, monkeypatch):
    tiny_cfg["intermediate_dir"] = str(tmp_path / "fresh")
    tiny_cfg["n_chapters"] = 2
    pages = {URL.format(chapter=1): _page("Search", "first verse"),
             URL.format(chapter=2): _page("second verse", "third verse")}
    tiny_cfg["source_url"] = URL
    created = []

    def new_session():
        created.append(StubSession(pages))
        return created[-1]

    monkeypatch.setattr(loader.requests, "Session", new_session)

    fetched = loader.run(tiny_cfg)
    assert (tmp_path / "fresh" / loader.RAW_TABLE).exists()

    # second run must not touch the network
    monkeypatch.setattr(loader.requests, "Session", lambda: StubSession({}))
    cached = loader.run(tiny_cfg)
    assert cached == fetched
    assert created[0].closed


def test_user_agent_is_sent_per_request_and_callers_session_is_untouched():
    session = StubSession({URL.format(chapter=1): _page("one a")})
    source = loader.HttpChapterSource(URL, "div.verse", session=session)
    loader.load_corpus(source, n_chapters=1)
    source.close()
    assert session.sent_headers == [{"User-Agent": loader.USER_AGENT}]
    assert session.headers == {}
    assert not session.closed


def test_cached_table_without_verses_column_is_rejected(tiny_cfg):
    cache = f"{tiny_cfg['intermediate_dir']}/{loader.RAW_TABLE}"
    pd.DataFrame({"chapter": [1, 1], "text": ["a", "b"]}).to_csv(cache, index=False)
    with pytest.raises(InvalidInput, match="verses"):
        loader.run(tiny_cfg)


def test_cached_table_with_bad_chapter_is_rejected(tiny_cfg):
    cache = f"{tiny_cfg['intermediate_dir']}/{loader.RAW_TABLE}"
    pd.DataFrame({"chapter": ["one"], "verses": ["Arjuna said"]}).to_csv(cache, index=False)
    with pytest.raises(InvalidInput) as exc:
        loader.run(tiny_cfg)
    assert isinstance(exc.value.__cause__, ValueError)
