#!/usr/bin/env python3
"""
Pipeline driver for the Bhagavad Gita verse analysis.

Usage:
    python gita_analysis.py --config config.yml
"""

import argparse, logging, sys
from ruamel.yaml import YAML  # actively maintained YAML lib 0.18.x

from gita_nlp.errors import PipelineError
from gita_nlp.logging_utils import init_logger

yaml = YAML(typ="safe")
LOGGER = logging.getLogger("gita_nlp")


def load_config(path):
    with open(path, "r", encoding="utf-8") as f:
        return yaml.load(f)


def main(cfg):
    # lazy imports to shorten cold-start time
    from gita_nlp import (
        loader,
        preprocessing,
        sentiment,
        topic_modeling,
        report,
        visualization,
        io_utils,
    )

    init_logger("gita_nlp", cfg)
    io_utils.prepare_dirs(cfg)

    verses = loader.run(cfg)                                # tuple[VerseRecord]
    normalized = preprocessing.run(cfg, verses)             # tuple[NormalizedVerse]
    sent_results = sentiment.run(cfg, verses)               # tuple[SentimentResult]
    topic_result = topic_modeling.run(cfg, normalized)      # TopicModelResult
    selection = topic_modeling.run_k_selection(cfg, normalized)
    summary = report.run(cfg, sent_results, topic_result)

    # persist
    io_utils.write_json(summary, "summary.json", cfg)
    io_utils.write_txt_summary(summary, cfg)

    # optional visualisations
    if cfg.get("save_figs", True):
        visualization.make_sentiment_figs(sent_results, cfg)
        visualization.make_topic_figs(topic_result, cfg)
        if selection is not None:
            visualization.make_k_selection_fig(selection, cfg)

    LOGGER.info("run complete; outputs in %s", cfg["out_dir"])
    return summary


if __name__ == "__main__":
    ap = argparse.ArgumentParser()
    ap.add_argument("--config", "-c", default="config.yml")
    args = ap.parse_args()
    cfg = load_config(args.config)
    try:
        main(cfg)
    except PipelineError as e:
        LOGGER.critical("pipeline aborted: %s", e)
        sys.exit(1)
