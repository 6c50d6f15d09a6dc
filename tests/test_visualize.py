from visualize import plot_hit_miss_rate, plot_run_comparison


def summary(hits, misses, evictions, trace="t.trace"):
    return {"hits": hits, "misses": misses, "evictions": evictions, "trace": trace}


def test_hit_miss_plot_written(tmp_path):
    out = tmp_path / "plots" / "rate.png"
    assert plot_hit_miss_rate(summary(4, 5, 3), str(out)) == str(out)
    assert out.stat().st_size > 0


def test_hit_miss_plot_without_accesses(tmp_path):
    out = tmp_path / "empty.png"
    plot_hit_miss_rate(summary(0, 0, 0), str(out))
    assert out.exists()


def test_run_comparison_plot(tmp_path):
    out = tmp_path / "runs.png"
    runs = [summary(4, 5, 3, "traces/yi.trace"), summary(1, 1, 0, "traces/a.trace")]
    plot_run_comparison(runs, str(out))
    assert out.stat().st_size > 0
