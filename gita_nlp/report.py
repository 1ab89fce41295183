"""
Fold sentiment and topic results into one presentation-ready summary.

The image classifier runs elsewhere; its ranked (label, confidence) output is
read from a CSV file and carried into the summary untouched apart from ranking.
"""

import logging
from collections import Counter
from pathlib import Path
from typing import Sequence, Tuple

import pandas as pd

from gita_nlp import sentiment
from gita_nlp.errors import InvalidInput
from gita_nlp.records import ImageLabel, SentimentResult, TopicModelResult

log = logging.getLogger(__name__)


def load_image_labels(path) -> Tuple[ImageLabel, ...]:
    path = Path(path)
    try:
        df = pd.read_csv(path, encoding="utf-8")
    except (OSError, pd.errors.ParserError) as e:
        raise InvalidInput(f"cannot read image labels {path}: {e}") from e
    if not {"label", "confidence"} <= set(df.columns):
        raise InvalidInput(f"{path} needs 'label' and 'confidence' columns")
    conf = pd.to_numeric(df["confidence"], errors="coerce")
    if conf.isna().any() or ((conf < 0) | (conf > 1)).any():
        raise InvalidInput(f"{path} has confidences outside [0, 1]")
    labels = [ImageLabel(str(l), float(c)) for l, c in zip(df["label"], conf)]
    return tuple(sorted(labels, key=lambda x: -x.confidence))


def build_summary(results: Sequence[SentimentResult], topic_result: TopicModelResult,
                  image_labels: Sequence[ImageLabel] = (), label_terms: int = 3,
                  exclude_unmatched: bool = False) -> dict:
    scores = [r.score for r in results]
    chapters = sentiment.chapter_sentiment(results)
    dominant = Counter(d.dominant_topic for d in topic_result.distributions if d.fitted)

    summary = {
        "n_verses": len(results),
        "n_chapters": int(chapters["chapter"].nunique()),
        "corpus_sentiment": sentiment.corpus_sentiment(results, exclude_unmatched),
        "min_score": min(scores, default=0.0),
        "max_score": max(scores, default=0.0),
        "unmatched_share": (sum(1 for r in results if not r.n_matches) / len(results)) if results else 0.0,
        "most_positive": list(max(results, key=lambda r: r.score).key) if results else None,
        "most_negative": list(min(results, key=lambda r: r.score).key) if results else None,
        "chapters": [{"chapter": int(row.chapter), "mean_score": float(row.mean_score),
                      "n_verses": int(row.n_verses)}
                     for row in chapters.itertuples(index=False)],
        "topics": [{"topic_id": t.topic_id,
                    "label": t.label(label_terms),
                    "top_terms": [[term, w] for term, w in t.top_terms],
                    "n_dominant": dominant.get(t.topic_id, 0)}
                   for t in topic_result.topics],
        "image_labels": [{"label": l.label, "confidence": l.confidence} for l in image_labels],
    }
    return summary


def run(cfg, results, topic_result):
    labels = ()
    if cfg.get("image_labels"):
        labels = load_image_labels(cfg["image_labels"])
        if labels:
            log.info("image classifier top label: %s (%.3f)", labels[0].label, labels[0].confidence)
    summary = build_summary(results, topic_result, labels,
                            exclude_unmatched=cfg.get("exclude_unmatched", False))
    log.info("corpus mean sentiment %.4f over %d verses", summary["corpus_sentiment"], summary["n_verses"])
    return summary
