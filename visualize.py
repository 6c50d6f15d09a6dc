# visualize.py
import os
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt


def _ensure_parent(outpath):
    parent = os.path.dirname(outpath)
    if parent:
        os.makedirs(parent, exist_ok=True)


def plot_hit_miss_rate(summary, outpath):
    """Pie of hits vs misses, with the eviction count in the title."""
    _ensure_parent(outpath)
    hits, misses = summary["hits"], summary["misses"]
    plt.figure(figsize=(4,4))
    if hits + misses:
        plt.pie([hits, misses], labels=['Hit', 'Miss'], autopct='%1.1f%%')
    else:
        plt.text(0.5, 0.5, "no data accesses", ha="center", va="center")
        plt.axis("off")
    plt.title(f"Cache Hit/Miss Rate ({summary['evictions']} evictions)")
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()
    return outpath


def plot_run_comparison(summaries, outpath, labels=None):
    """Grouped bars of hits/misses/evictions, one group per run."""
    _ensure_parent(outpath)
    if labels is None:
        labels = [os.path.basename(s.get("trace", f"run {i}")) for i, s in enumerate(summaries)]
    xs = range(len(summaries))
    width = 0.25
    plt.figure(figsize=(max(6, 1.5 * len(summaries)), 4))
    for k, key in enumerate(("hits", "misses", "evictions")):
        plt.bar([x + (k - 1) * width for x in xs], [s[key] for s in summaries],
                width=width, label=key)
    plt.xticks(list(xs), labels, rotation=30, ha="right")
    plt.ylabel("Count")
    plt.title("Cache Counters per Run")
    plt.legend()
    plt.grid(True, axis="y")
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()
    return outpath
