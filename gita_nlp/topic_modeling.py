"""
gensim LDA over the normalized verse tokens, plus a k-selection report.

fit() is a pure function of (corpus, settings): it returns an immutable
TopicModelResult and keeps no model object around. With a fixed seed two
fits on identical input give identical topics; without one they will not.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

import numpy as np
import pandas as pd
from gensim import corpora, models
from gensim.models.coherencemodel import CoherenceModel

from gita_nlp import io_utils
from gita_nlp.errors import ModelFitFailure
from gita_nlp.records import DocumentTopicDistribution, NormalizedVerse, Topic, TopicModelResult

log = logging.getLogger(__name__)

K_TOPICS = 5
SEED = 1234
K_CANDIDATES = (3, 4, 5, 10, 20)
SELECTION_COLUMNS = ["k", "coherence", "held_out_likelihood", "per_word_bound"]


def build_dictionary(texts: Sequence[List[str]], min_df: int = 2, no_above: float = 1.0):
    dictionary = corpora.Dictionary(texts)
    dictionary.filter_extremes(no_below=min_df, no_above=no_above, keep_n=None)
    return dictionary


def _train_lda(bows, dictionary, k, seed, passes, iterations, alpha):
    lda = models.LdaModel(corpus=bows,
                          id2word=dictionary,
                          num_topics=k,
                          alpha=alpha,
                          passes=passes,
                          iterations=iterations,
                          random_state=seed)
    if not np.isfinite(lda.get_topics()).all():
        raise ModelFitFailure(f"LDA with k={k} produced non-finite topic weights")
    return lda


def _distribution(lda, bow, k) -> dict:
    props = {t: 0.0 for t in range(k)}
    for topic_id, p in lda.get_document_topics(bow, minimum_probability=0.0):
        props[topic_id] = float(p)
    total = sum(props.values())
    return {t: p / total for t, p in props.items()}


def fit(verses: Sequence[NormalizedVerse], k: int = K_TOPICS, seed: int = SEED,
        min_df: int = 2, no_above: float = 1.0, passes: int = 10,
        iterations: int = 400, alpha="auto", top_n: int = 10) -> TopicModelResult:
    if k < 1:
        raise ModelFitFailure(f"topic count must be positive, got {k}")
    texts = [list(v.tokens) for v in verses]
    dictionary = build_dictionary(texts, min_df, no_above)
    if len(dictionary) == 0:
        raise ModelFitFailure(f"vocabulary is empty after dropping terms in fewer than {min_df} documents")

    bows = [dictionary.doc2bow(t) for t in texts]
    fit_bows = [b for b in bows if b]
    if not fit_bows:
        raise ModelFitFailure("no document has any term left after vocabulary pruning")
    log.info("fitting LDA: k=%d seed=%s vocabulary=%d documents=%d (%d empty after pruning)",
             k, seed, len(dictionary), len(fit_bows), len(bows) - len(fit_bows))

    lda = _train_lda(fit_bows, dictionary, k, seed, passes, iterations, alpha)

    topics = tuple(Topic(t, tuple((term, float(w)) for term, w in lda.show_topic(t, topn=top_n)))
                   for t in range(k))
    uniform = {t: 1.0 / k for t in range(k)}
    distributions = tuple(
        DocumentTopicDistribution(v.chapter, v.verse, _distribution(lda, bow, k), True) if bow
        else DocumentTopicDistribution(v.chapter, v.verse, dict(uniform), False)
        for v, bow in zip(verses, bows))
    return TopicModelResult(k=k, seed=seed, topics=topics, distributions=distributions,
                            vocabulary_size=len(dictionary), n_fitted_documents=len(fit_bows))


def _split(n: int, holdout_fraction: float, seed: int) -> Tuple[List[int], List[int]]:
    order = np.random.RandomState(seed).permutation(n)
    n_held = min(n - 1, max(1, int(round(n * holdout_fraction))))
    return sorted(order[n_held:].tolist()), sorted(order[:n_held].tolist())


def evaluate_k(verses: Sequence[NormalizedVerse], candidates: Iterable[int] = K_CANDIDATES,
               holdout_fraction: float = 0.2, seed: int = SEED, coherence: str = "u_mass",
               min_df: int = 2, no_above: float = 1.0, passes: int = 10,
               iterations: int = 400, alpha="auto", top_n: int = 10) -> pd.DataFrame:
    """
    One row per candidate k: coherence of the topics on the training part and
    the variational log-likelihood bound on the held-out part.

    Picking k from this table is left to whoever reads it.
    """
    texts = [list(v.tokens) for v in verses if v.tokens]
    if len(texts) < 2:
        raise ModelFitFailure("need at least two non-empty documents to hold some out")
    train_idx, held_idx = _split(len(texts), holdout_fraction, seed)
    train_texts = [texts[i] for i in train_idx]

    dictionary = build_dictionary(train_texts, min_df, no_above)
    if len(dictionary) == 0:
        raise ModelFitFailure("vocabulary of the training part is empty after pruning")
    train_bows = [b for b in (dictionary.doc2bow(t) for t in train_texts) if b]
    held_bows = [b for b in (dictionary.doc2bow(texts[i]) for i in held_idx) if b]
    if not held_bows:
        log.warning("held-out documents share no vocabulary with the training part")

    rows = []
    for k in candidates:
        lda = _train_lda(train_bows, dictionary, k, seed, passes, iterations, alpha)
        cm = CoherenceModel(model=lda, texts=train_texts, corpus=train_bows,
                            dictionary=dictionary, coherence=coherence,
                            topn=top_n, processes=1)
        row = {"k": k,
               "coherence": float(cm.get_coherence()),
               "held_out_likelihood": float(lda.bound(held_bows)) if held_bows else float("nan"),
               "per_word_bound": float(lda.log_perplexity(held_bows)) if held_bows else float("nan")}
        log.info("k=%(k)d coherence=%(coherence).4f held-out bound=%(held_out_likelihood).1f", row)
        rows.append(row)
    return pd.DataFrame(rows, columns=SELECTION_COLUMNS)


def _settings(cfg) -> dict:
    tm = cfg.get("topic_model") or {}
    return {"seed": tm.get("seed", SEED),
            "min_df": tm.get("min_df", 2),
            "no_above": tm.get("no_above", 1.0),
            "passes": tm.get("passes", 10),
            "iterations": tm.get("iterations", 400),
            "alpha": tm.get("alpha", "auto"),
            "top_n": tm.get("top_n", 10)}


def topic_rows(result: TopicModelResult) -> list:
    return [{"topic_id": t.topic_id, "label": t.label(), "top_terms": [list(tw) for tw in t.top_terms]}
            for t in result.topics]


def run(cfg, verses):
    tm = cfg.get("topic_model") or {}
    result = fit(verses, k=tm.get("k_topics", K_TOPICS), **_settings(cfg))
    for t in result.topics:
        log.info("topic %d: %s", t.topic_id, ", ".join(term for term, _ in t.top_terms))

    io_utils.write_jsonl(topic_rows(result), "topics.jsonl", cfg)
    rows = [dict(chapter=d.chapter, verse=d.verse, fitted=d.fitted, dominant_topic=d.dominant_topic,
                 **{f"topic_{t}": p for t, p in sorted(d.proportions.items())})
            for d in result.distributions]
    io_utils.write_table(rows, Path(cfg["out_dir"], "doc_topics.csv"),
                         ["chapter", "verse", "fitted", "dominant_topic"]
                         + [f"topic_{t}" for t in range(result.k)])
    return result


def run_k_selection(cfg, verses):
    """The k-selection table, or None when no candidates are configured."""
    ks = cfg.get("k_selection") or {}
    candidates = ks.get("candidates")
    if not candidates:
        return None
    table = evaluate_k(verses, candidates,
                       holdout_fraction=ks.get("holdout_fraction", 0.2),
                       coherence=ks.get("coherence", "u_mass"),
                       **_settings(cfg))
    table.to_csv(Path(cfg["out_dir"], "k_selection.csv"), index=False, encoding="utf-8")
    return table
