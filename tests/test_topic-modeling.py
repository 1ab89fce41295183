import math

import pytest

from gita_nlp import loader, preprocessing, topic_modeling
from gita_nlp.errors import ModelFitFailure
from gita_nlp.records import NormalizedVerse

DOCS = [
    ["battle", "warrior", "fight", "field"],
    ["warrior", "fight", "chariot", "battle"],
    ["soul", "eternal", "self", "unborn"],
    ["self", "soul", "eternal", "death"],
    ["devotion", "yoga", "mind", "peace"],
    ["mind", "peace", "yoga", "devotion"],
    ["battle", "field", "chariot", "fight"],
    ["soul", "self", "eternal", "unborn"],
    ["mind", "yoga", "devotion", "peace"],
    [],
    ["krishna"],
]


@pytest.fixture
def corpus():
    return tuple(NormalizedVerse(1 + i // 4, 1 + i % 4, tuple(d)) for i, d in enumerate(DOCS))


def _fit(corpus, **kw):
    kw.setdefault("k", 3)
    return topic_modeling.fit(corpus, seed=7, passes=5, iterations=100, top_n=4, **kw)


def test_lda_runs(corpus):
    res = _fit(corpus)
    assert res.k == 3
    assert len(res.topics) == 3
    assert all(len(t.top_terms) == 4 for t in res.topics)
    assert res.vocabulary_size == 13          # "death" and "krishna" occur once
    assert res.n_fitted_documents == 9


def test_every_verse_gets_a_distribution(corpus):
    res = _fit(corpus)
    assert [d.key for d in res.distributions] == [v.key for v in corpus]
    for d in res.distributions:
        assert sorted(d.proportions) == [0, 1, 2]
        assert math.isclose(sum(d.proportions.values()), 1.0, abs_tol=1e-6)


def test_pruned_documents_are_uniform_and_flagged(corpus):
    res = _fit(corpus)
    empty, singleton = res.distributions[9], res.distributions[10]
    for d in (empty, singleton):
        assert not d.fitted
        assert all(p == pytest.approx(1 / 3) for p in d.proportions.values())
    assert all(d.fitted for d in res.distributions[:9])


def test_same_seed_same_topics(corpus):
    first, second = _fit(corpus), _fit(corpus)
    assert [t.top_terms for t in first.topics] == [t.top_terms for t in second.topics]


def test_empty_vocabulary_fails(corpus):
    with pytest.raises(ModelFitFailure):
        _fit(corpus, min_df=50)


def test_bad_topic_count_fails(corpus):
    with pytest.raises(ModelFitFailure):
        _fit(corpus, k=0)


def test_evaluate_k_reports_one_row_per_candidate():
    # three copies so every term survives in both the training and held-out part
    corpus = tuple(NormalizedVerse(c, v, tuple(d))
                   for c in (1, 2, 3) for v, d in enumerate(DOCS[:9], start=1))
    table = topic_modeling.evaluate_k(corpus, candidates=[2, 3], holdout_fraction=0.25,
                                      seed=7, passes=3, iterations=50, top_n=3)
    assert table.columns.tolist() == topic_modeling.SELECTION_COLUMNS
    assert table["k"].tolist() == [2, 3]
    assert table["coherence"].map(math.isfinite).all()
    assert table["held_out_likelihood"].map(math.isfinite).all()
    assert table["per_word_bound"].map(math.isfinite).all()


def test_run_from_config(tiny_cfg):
    from gita_nlp import io_utils
    io_utils.prepare_dirs(tiny_cfg)
    normalized = preprocessing.run(tiny_cfg, loader.run(tiny_cfg))
    res = topic_modeling.run(tiny_cfg, normalized)
    assert res.k == tiny_cfg["topic_model"]["k_topics"]
    assert len(res.distributions) == len(normalized)
    out = tiny_cfg["out_dir"]
    lines = open(f"{out}/topics.jsonl", encoding="utf-8").read().splitlines()
    assert len(lines) == res.k
