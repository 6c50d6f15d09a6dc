# main.py
import json
import click
from benchmark import TraceRunner, save_results
from cache import InvalidGeometry
from tracefile import TraceUnavailable, format_record
from visualize import plot_hit_miss_rate

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])
RESULTS_FILE = ".csim_results"

EXAMPLES = """\b
Examples:
  csim -s 4 -E 1 -b 4 -t traces/yi.trace
  csim -v -s 8 -E 2 -b 4 -t traces/yi.trace
"""


def load_config(path="config.json"):
    with open(path, "r") as f:
        cfg = json.load(f)
    if not isinstance(cfg, dict):
        raise ValueError("top level must be a JSON object")
    return cfg


def merge_config(cfg, s=None, E=None, b=None, trace_file=None):
    """Command-line values win over the config file."""
    merged = {key: dict(cfg.get(key, {})) for key in ("cache", "trace", "output")}
    for key, value in (("s", s), ("E", E), ("b", b)):
        if value is not None:
            merged["cache"][key] = value
    if trace_file is not None:
        merged["trace"]["path"] = trace_file
    return merged


def missing_arguments(cfg):
    cache_cfg = cfg["cache"]
    missing = [short for short, long in (("s", "set_index_bits"), ("E", "lines_per_set"),
                                         ("b", "block_offset_bits"))
               if cache_cfg.get(short) is None and cache_cfg.get(long) is None]
    if not cfg["trace"].get("path"):
        missing.append("t")
    return missing


def describe_results(results):
    """'miss eviction hit' style outcome text for one record."""
    words = []
    for r in results:
        if r.hit:
            words.append("hit")
        else:
            words.append("miss eviction" if r.eviction else "miss")
    return " ".join(words)


def print_verbose(record, results):
    if results:
        click.echo(f"{format_record(record)} {describe_results(results)}")


def print_summary(hits, misses, evictions, results_file=RESULTS_FILE):
    click.echo(f"hits:{hits} misses:{misses} evictions:{evictions}")
    if results_file:
        with open(results_file, "w") as f:
            f.write(f"{hits} {misses} {evictions}\n")


@click.command(context_settings=CONTEXT_SETTINGS, epilog=EXAMPLES)
@click.option("-s", "set_bits", type=int, help="Number of set index bits.")
@click.option("-E", "lines", type=int, help="Number of lines per set.")
@click.option("-b", "block_bits", type=int, help="Number of block offset bits.")
@click.option("-t", "trace_file", type=click.Path(), help="Trace file.")
@click.option("-v", "verbose", is_flag=True, help="Optional verbose flag.")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False),
              help="JSON config with cache/trace/output sections.")
@click.option("--json", "results_dir", type=click.Path(file_okay=False),
              help="Directory to save the JSON summary in.")
@click.option("--plot", "plot_path", type=click.Path(dir_okay=False),
              help="Save a hit/miss chart to this file.")
@click.pass_context
def main(ctx, set_bits, lines, block_bits, trace_file, verbose, config_path, results_dir, plot_path):
    """Replay a valgrind memory trace through an LRU set-associative cache."""
    try:
        cfg = load_config(config_path) if config_path else {}
    except ValueError as e:
        click.echo(f"{ctx.info_name}: invalid config file {config_path}: {e}", err=True)
        ctx.exit(1)
    cfg = merge_config(cfg, s=set_bits, E=lines, b=block_bits, trace_file=trace_file)

    if missing_arguments(cfg):
        click.echo(f"{ctx.info_name}: Missing required command line argument", err=True)
        click.echo(ctx.get_help(), err=True)
        ctx.exit(1)

    try:
        runner = TraceRunner(cfg)
    except InvalidGeometry as e:
        click.echo(f"{ctx.info_name}: invalid cache geometry: {e}", err=True)
        ctx.exit(1)

    try:
        summary = runner.run(on_record=print_verbose if verbose else None)
    except TraceUnavailable as e:
        click.echo(f"{ctx.info_name}: {e}", err=True)
        ctx.exit(1)
    except InvalidGeometry as e:
        click.echo(f"{ctx.info_name}: invalid cache geometry: {e}", err=True)
        ctx.exit(1)

    if summary["stopped_at"] is not None:
        click.echo(f"{ctx.info_name}: stopped at line {summary['stopped_at']}: "
                   f"malformed trace record", err=True)

    print_summary(summary["hits"], summary["misses"], summary["evictions"])

    out_cfg = cfg["output"]
    if results_dir is not None:
        out_cfg["results_dir"] = results_dir
    if "results_dir" in out_cfg:
        path = save_results(summary, out_cfg)
        click.echo(f"Results saved to: {path}")
    plot_path = plot_path or out_cfg.get("plot")
    if plot_path:
        plot_hit_miss_rate(summary, plot_path)
        click.echo(f"Plot saved to: {plot_path}")


if __name__ == "__main__":
    main()
