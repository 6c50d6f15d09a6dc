# workload.py
import numpy as np
from tracefile import LOAD, STORE, MODIFY, TraceRecord, format_record

PATTERNS = ("sequential", "random", "mixed")


class AddressGenerator:
    """
    Synthetic address stream over a working set of `num_blocks` blocks.
    Addresses are block-aligned byte addresses starting at `base`.
    """

    def __init__(self, working_set_bytes=1024 * 1024, block_size=64, pattern="mixed",
                 stride=1, base=0, seed=None):
        if pattern not in PATTERNS:
            raise ValueError(f"unknown access pattern {pattern!r}, expected one of {PATTERNS}")
        self.block_size = block_size
        self.num_blocks = max(1, working_set_bytes // block_size)
        self.pattern = pattern
        self.stride = stride
        self.base = base
        self.rng = np.random.default_rng(seed)
        self._seq_ptr = 0

    def _next_sequential(self):
        block = self._seq_ptr
        self._seq_ptr = (block + self.stride) % self.num_blocks
        return block

    def _next_block(self):
        if self.pattern == "sequential":
            return self._next_sequential()
        elif self.pattern == "random":
            return int(self.rng.integers(0, self.num_blocks))
        else:  # mixed: mostly sequential with some random
            if self.rng.random() < 0.8:
                return self._next_sequential()
            return int(self.rng.integers(0, self.num_blocks))

    def addresses(self, num_requests):
        for _ in range(num_requests):
            yield self.base + self._next_block() * self.block_size


def generate_records(num_requests=10000, read_ratio=0.8, seed=None, **generator_opts):
    """Loads and stores over a synthetic address stream."""
    gen = AddressGenerator(seed=seed, **generator_opts)
    for addr in gen.addresses(num_requests):
        kind = LOAD if gen.rng.random() < read_ratio else STORE
        yield TraceRecord(kind, addr, 4)


def transpose_records(n, a_base=0x100000, b_base=0x200000, elem_size=4):
    """
    Accesses of the naive transpose B[j][i] = A[i][j] on n x n row-major
    matrices: one load from A then one store to B per element.
    """
    for i in range(n):
        for j in range(n):
            yield TraceRecord(LOAD, a_base + (i * n + j) * elem_size, elem_size)
            yield TraceRecord(STORE, b_base + (j * n + i) * elem_size, elem_size)


def blocked_transpose_records(n, block, a_base=0x100000, b_base=0x200000, elem_size=4):
    """Same transpose, walked in block x block tiles."""
    for ii in range(0, n, block):
        for jj in range(0, n, block):
            for i in range(ii, min(ii + block, n)):
                for j in range(jj, min(jj + block, n)):
                    yield TraceRecord(LOAD, a_base + (i * n + j) * elem_size, elem_size)
                    yield TraceRecord(STORE, b_base + (j * n + i) * elem_size, elem_size)


def write_trace(records, path):
    """Write records in valgrind lackey format; data accesses get a leading space."""
    count = 0
    with open(path, "w") as f:
        for record in records:
            prefix = " " if record.kind in (LOAD, STORE, MODIFY) else ""
            f.write(prefix + format_record(record) + "\n")
            count += 1
    return count
