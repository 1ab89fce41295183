from pathlib import Path
import json, logging

import pandas as pd

from gita_nlp.errors import InvalidInput

log = logging.getLogger(__name__)


def prepare_dirs(cfg):
    Path(cfg["out_dir"], "figs").mkdir(parents=True, exist_ok=True)
    Path(cfg["intermediate_dir"]).mkdir(parents=True, exist_ok=True)


def write_table(rows, path, columns):
    """Write a list of dict rows as a UTF-8 CSV with a fixed column order."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(list(rows), columns=columns).to_csv(path, index=False, encoding="utf-8")
    log.debug("wrote %s", path)
    return path


def read_table(path, columns):
    # keep_default_na=False: an empty cleaned verse must come back as "" not NaN
    df = pd.read_csv(path, encoding="utf-8", keep_default_na=False, dtype=str)
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise InvalidInput(f"{path} is missing columns {missing}")
    return df


def write_jsonl(obj, name, cfg):
    path = Path(cfg["out_dir"], name)
    with open(path, "w", encoding="utf-8") as f:
        for record in obj:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")
    return path


def write_json(obj, name, cfg):
    path = Path(cfg["out_dir"], name)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, ensure_ascii=False)
    return path


def write_txt_summary(summary, cfg):
    with open(Path(cfg["out_dir"], "summary.txt"), "w", encoding="utf-8") as f:
        f.write("# Sentiment\n")
        f.write(f"verses scored      : {summary['n_verses']}\n")
        f.write(f"corpus mean        : {summary['corpus_sentiment']:.4f}\n")
        f.write(f"verse score range  : [{summary['min_score']:.4f}, {summary['max_score']:.4f}]\n")
        f.write(f"no-match share     : {summary['unmatched_share']:.2%}\n\n")
        f.write("## Mean sentiment by chapter\n")
        for row in summary["chapters"]:
            f.write(f"  chapter {row['chapter']:>2}: {row['mean_score']:+.4f}  ({row['n_verses']} verses)\n")
        f.write("\n# Topic Models\n")
        for tm in summary["topics"]:
            terms = ", ".join(t for t, _ in tm["top_terms"])
            f.write(f"  topic {tm['topic_id']} [{tm['label']}] ({tm['n_dominant']} verses): {terms}\n")
        if summary["image_labels"]:
            f.write("\n# Image classification\n")
            for rank, item in enumerate(summary["image_labels"], start=1):
                f.write(f"  {rank}. {item['label']} ({item['confidence']:.3f})\n")
