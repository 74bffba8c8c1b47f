# visualize.py
import os
import matplotlib.pyplot as plt


def _ensure_parent(outpath):
    parent = os.path.dirname(outpath)
    if parent:
        os.makedirs(parent, exist_ok=True)


def plot_miss_ratio_progress(history, outpath, title="Miss Ratio over the Trace"):
    _ensure_parent(outpath)
    steps = [s for s, _ in history]
    ratios = [r for _, r in history]
    plt.figure(figsize=(8,4))
    plt.plot(steps, ratios, marker='.', linewidth=0.8)
    plt.title(title)
    plt.xlabel("Step")
    plt.ylabel("Miss ratio")
    plt.ylim(0, 1)
    plt.grid(True)
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()


def plot_hit_miss_rate(miss_ratio, outpath, title="Cache Hit/Miss Rate"):
    _ensure_parent(outpath)
    plt.figure(figsize=(4,4))
    labels = ['Hit', 'Miss']
    sizes = [1.0 - miss_ratio, miss_ratio]
    plt.pie(sizes, labels=labels, autopct='%1.1f%%')
    plt.title(title)
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()


def plot_mode_comparison(summaries, outpath):
    """Bar chart of miss ratio per mode; physical also gets its forced-eviction ratio."""
    _ensure_parent(outpath)
    modes = list(summaries.keys())
    miss = [summaries[m]["miss_ratio"] for m in modes]
    forced = [summaries[m].get("forced_eviction_ratio", 0.0) for m in modes]
    xs = range(len(modes))
    plt.figure(figsize=(6,4))
    plt.bar([x - 0.2 for x in xs], miss, width=0.4, label="Miss ratio")
    plt.bar([x + 0.2 for x in xs], forced, width=0.4, label="Forced eviction ratio")
    plt.xticks(list(xs), modes)
    plt.ylabel("Ratio")
    plt.ylim(0, 1)
    plt.title("Lease Policy vs LRU")
    plt.legend()
    plt.grid(True, axis='y')
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()
