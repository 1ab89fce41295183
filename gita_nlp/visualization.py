import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt            # matplotlib 3.9.x
import seaborn as sns                      # seaborn 0.13 (2024)

from gita_nlp import sentiment


def _save(fig, name, cfg):
    path = f"{cfg['out_dir']}/figs/{name}"
    fig.savefig(path, dpi=cfg.get("fig_dpi", 150), bbox_inches="tight")
    plt.close(fig)
    return path


def make_sentiment_figs(sent_results, cfg):
    chapters = sentiment.chapter_sentiment(sent_results)
    fig, ax = plt.subplots(figsize=(9, 4))
    sns.barplot(data=chapters, x="chapter", y="mean_score", color="steelblue", ax=ax)
    ax.axhline(0, color="black", linewidth=0.8)
    ax.set_title("Mean verse sentiment by chapter")
    paths = [_save(fig, "sentiment_by_chapter.png", cfg)]

    fig, ax = plt.subplots(figsize=(6, 4))
    sns.histplot(x=[r.score for r in sent_results], bins=30, ax=ax)
    ax.set_xlabel("verse score")
    ax.set_title("Sentiment distribution")
    paths.append(_save(fig, "sentiment_hist.png", cfg))
    return paths


def make_topic_figs(topic_result, cfg):
    k = topic_result.k
    fig, axes = plt.subplots(1, k, figsize=(3.2 * k, 4), squeeze=False)
    for ax, topic in zip(axes[0], topic_result.topics):
        terms = [t for t, _ in topic.top_terms]
        weights = [w for _, w in topic.top_terms]
        sns.barplot(x=weights, y=terms, color="seagreen", ax=ax)
        ax.set_title(f"T{topic.topic_id}")
    fig.suptitle(f"LDA top terms (k={k})")
    return [_save(fig, "lda_topics.png", cfg)]


def make_k_selection_fig(table, cfg):
    fig, ax1 = plt.subplots(figsize=(6, 4))
    sns.lineplot(data=table, x="k", y="coherence", marker="o", color="tab:blue", ax=ax1)
    ax2 = ax1.twinx()
    sns.lineplot(data=table, x="k", y="held_out_likelihood", marker="s", color="tab:red", ax=ax2)
    ax1.set_ylabel("coherence", color="tab:blue")
    ax2.set_ylabel("held-out log-likelihood bound", color="tab:red")
    ax1.set_title("Topic count trade-off")
    return [_save(fig, "k_selection.png", cfg)]
