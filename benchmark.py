# benchmark.py
import os
import json
import time
import threading
from cache import CacheSimulator, Geometry
from tracefile import LOAD, STORE, MODIFY, open_trace


def apply_record(sim: CacheSimulator, record):
    """
    Feed one trace record to the simulator and return the access results.
    I -> nothing, L/S -> one access, M -> load then store of the same address.
    Unknown kinds are ignored.
    """
    if record.kind in (LOAD, STORE):
        return [sim.access(record.address)]
    if record.kind == MODIFY:
        first = sim.access(record.address)
        return [first, sim.access(record.address)]
    # INSTRUCTION and anything else leave the cache untouched
    return []


class TraceRunner:
    def __init__(self, cfg):
        self.cfg = cfg
        # geometry is validated before the trace is touched
        self.geometry = Geometry.from_mapping(cfg.get("cache", {}))
        self.trace_path = cfg.get("trace", {}).get("path")
        if not self.trace_path:
            raise ValueError("trace path is required")

    def run(self, on_record=None):
        """
        Replay the trace once against a fresh cache.
        `on_record(record, results)` is called after every record if given.
        Returns the summary dict.
        """
        start = time.time()
        with open_trace(self.trace_path) as trace, CacheSimulator(self.geometry) as sim:
            for record in trace:
                results = apply_record(sim, record)
                if on_record is not None:
                    on_record(record, results)
            counters = sim.counters
            used_lines = sim.state.occupancy()
        end = time.time()

        summary = {
            "trace": self.trace_path,
            "geometry": self.geometry.describe(),
            "hits": counters.hits,
            "misses": counters.misses,
            "evictions": counters.evictions,
            "accesses": counters.accesses,
            "hit_rate": (counters.hits / counters.accesses) if counters.accesses else 0,
            "records": trace.records_read,
            "stopped_at": trace.stopped_at,
            "used_lines": used_lines,
            "duration_s": end - start,
        }
        return summary

    def save_results(self, summary, out_cfg=None):
        out_cfg = self.cfg.get("output", {}) if out_cfg is None else out_cfg
        return save_results(summary, out_cfg)


def save_results(summary, out_cfg):
    results_dir = out_cfg.get("results_dir", "results")
    os.makedirs(results_dir, exist_ok=True)
    path = os.path.join(results_dir, out_cfg.get("results_file", "results.json"))
    with open(path, "w") as f:
        json.dump(summary, f, indent=2)
    return path


def run_many(cfgs, num_threads=4):
    """
    Run independent traces in parallel. Each run builds its own simulator,
    so nothing is shared but the result list. Summaries come back in input
    order; the first failure is re-raised after all threads finish.
    """
    cfgs = list(cfgs)
    results = [None] * len(cfgs)
    errors = []
    results_lock = threading.Lock()

    def _worker(indices):
        for i in indices:
            try:
                summary = TraceRunner(cfgs[i]).run()
            except Exception as e:
                with results_lock:
                    errors.append((i, e))
                continue
            with results_lock:
                results[i] = summary

    threads = []
    num_threads = max(1, min(num_threads, len(cfgs)))
    for n in range(num_threads):
        t = threading.Thread(target=_worker, args=(range(n, len(cfgs), num_threads),))
        t.start()
        threads.append(t)
    for t in threads:
        t.join()

    if errors:
        raise min(errors, key=lambda item: item[0])[1]
    return results
