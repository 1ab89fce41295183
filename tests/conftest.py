import pytest
import pandas as pd

TOY_VERSES = [
    (1, "Arjuna saw the warriors arrayed for battle on the field of Kurukshetra."),
    (1, "Seeing his kinsmen ready to fight, Arjuna's heart was filled with grief."),
    (1, "I don't wish to fight, Krishna; what joy can come from killing my kinsmen?"),
    (2, "The soul is eternal; it is never born and it never dies."),
    (2, "The wise do not grieve for the living or for the dead."),
    (2, "Fight the battle with a steady mind, free from grief and desire."),
    (3, "Perform your duty without attachment to the fruits of action."),
    (3, "Anger arises from desire, and from anger comes delusion of the mind."),
    (3, "Blessed is the yogi whose mind is steady in devotion."),
]

TOY_LEXICON = {
    "eternal": 0.5, "blessed": 0.6, "anger": -0.5, "sin": -0.7, "joy": 0.8,
    "grief": -0.6, "delusion": -0.4, "wise": 0.4, "free": 0.3, "killing": -0.8,
}


@pytest.fixture
def tiny_cfg(tmp_path):
    """Minimal config pointing at a cached 9-verse toy corpus for fast tests."""
    inter = tmp_path / "inter"
    inter.mkdir()
    pd.DataFrame(TOY_VERSES, columns=["chapter", "verses"]).to_csv(
        inter / "raw_verses.csv", index=False, encoding="utf-8")
    lexicon = tmp_path / "lexicon.csv"
    pd.DataFrame(sorted(TOY_LEXICON.items()), columns=["word", "polarity"]).to_csv(
        lexicon, index=False, encoding="utf-8")

    cfg = {
        "intermediate_dir": str(inter),
        "out_dir": str(tmp_path / "out"),
        "log_dir": str(tmp_path / "log"),
        # ...override only what matters for tests...
        "source_url": "https://example.invalid/chapter/{chapter}/",
        "verse_selector": "div.verse",
        "n_chapters": 3,
        "use_cache": True,
        "lemmatizer": "wordnet",
        "stopwords": "nltk",
        "lexicon": str(lexicon),
        "sentence_segmenter": "regex",
        "topic_model": {"k_topics": 2, "seed": 42, "min_df": 2, "passes": 5, "iterations": 50},
        "k_selection": {"candidates": [2, 3], "holdout_fraction": 0.2},
        "image_labels": None,
        "save_figs": True,
        "fig_dpi": 40,
    }
    return cfg


@pytest.fixture
def toy_lexicon():
    return dict(TOY_LEXICON)
