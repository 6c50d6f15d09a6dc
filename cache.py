# cache.py
import numbers
from dataclasses import dataclass
from typing import NamedTuple

import numpy as np

ADDRESS_BITS = 64
# upper bound on set_count * lines_per_set that CacheState will allocate
MAX_LINES = 1 << 28


class InvalidGeometry(ValueError):
    """Raised when the s / E / b triple cannot describe a cache."""


@dataclass(frozen=True)
class Geometry:
    """
    Shape of a set-associative cache.
    An address splits into | tag | set index (s bits) | block offset (b bits) |.
    """
    set_index_bits: int
    lines_per_set: int
    block_offset_bits: int

    def __post_init__(self):
        for name in ("set_index_bits", "lines_per_set", "block_offset_bits"):
            value = getattr(self, name)
            if value is None:
                raise InvalidGeometry(f"{name} is required")
            if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                raise InvalidGeometry(f"{name} must be an integer, got {value!r}")
            object.__setattr__(self, name, int(value))
        if self.set_index_bits < 0:
            raise InvalidGeometry("set_index_bits must be non-negative")
        if self.block_offset_bits < 0:
            raise InvalidGeometry("block_offset_bits must be non-negative")
        if self.lines_per_set < 1:
            raise InvalidGeometry("lines_per_set must be at least 1")
        if self.set_index_bits + self.block_offset_bits > ADDRESS_BITS:
            raise InvalidGeometry(
                f"s + b = {self.set_index_bits + self.block_offset_bits} "
                f"exceeds the {ADDRESS_BITS}-bit address width")
        if self.set_count * self.lines_per_set > MAX_LINES:
            raise InvalidGeometry(
                f"{self.set_count} sets x {self.lines_per_set} lines "
                f"exceeds the {MAX_LINES}-line limit")

    @classmethod
    def from_mapping(cls, cfg):
        """Build from a config section using either short (s/E/b) or long keys."""
        def pick(short, long):
            value = cfg.get(short)
            return cfg.get(long) if value is None else value
        return cls(
            set_index_bits=pick("s", "set_index_bits"),
            lines_per_set=pick("E", "lines_per_set"),
            block_offset_bits=pick("b", "block_offset_bits"),
        )

    @property
    def set_count(self) -> int:
        return 1 << self.set_index_bits

    @property
    def block_size(self) -> int:
        return 1 << self.block_offset_bits

    @property
    def tag_bits(self) -> int:
        return ADDRESS_BITS - self.set_index_bits - self.block_offset_bits

    def decompose(self, address: int):
        """Return (tag, set_index, block_offset) for a 64-bit address."""
        assert 0 <= address < (1 << ADDRESS_BITS), f"address out of range: {address:#x}"
        block_offset = address & (self.block_size - 1)
        set_index = (address >> self.block_offset_bits) & (self.set_count - 1)
        tag = address >> (self.set_index_bits + self.block_offset_bits)
        return tag, set_index, block_offset

    def split(self, address: int):
        tag, set_index, _ = self.decompose(address)
        return tag, set_index

    def describe(self):
        return {
            "s": self.set_index_bits,
            "E": self.lines_per_set,
            "b": self.block_offset_bits,
            "num_sets": self.set_count,
            "block_size": self.block_size,
            "tag_bits": self.tag_bits,
        }


class CacheState:
    """
    Line metadata for every (set, line) slot, stored as three flat
    (set_count x lines_per_set) arrays. No payload bytes are kept.
    """

    def __init__(self, geometry: Geometry):
        self.geometry = geometry
        shape = (geometry.set_count, geometry.lines_per_set)
        try:
            self.valid = np.zeros(shape, dtype=bool)
            self.tags = np.zeros(shape, dtype=np.uint64)
            self.recency = np.zeros(shape, dtype=np.int64)
        except (ValueError, MemoryError) as e:
            raise InvalidGeometry(f"cannot allocate {shape[0]} x {shape[1]} cache lines: {e}") from e

    @property
    def released(self) -> bool:
        return self.valid is None

    def lines(self, set_index: int):
        """Mutable row views (valid, tags, recency) for one set."""
        assert not self.released, "cache storage already released"
        return self.valid[set_index], self.tags[set_index], self.recency[set_index]

    def occupancy(self) -> int:
        return int(self.valid.sum())

    def release(self):
        self.valid = self.tags = self.recency = None


@dataclass
class Counters:
    hits: int = 0
    misses: int = 0
    evictions: int = 0

    @property
    def accesses(self) -> int:
        return self.hits + self.misses

    def as_dict(self):
        return {"hits": self.hits, "misses": self.misses, "evictions": self.evictions}


class AccessResult(NamedTuple):
    hit: bool
    eviction: bool
    tag: int
    set_index: int
    line: int


class CacheSimulator:
    """
    LRU set-associative cache model driven one address at a time.

    Recency comes from a clock owned by this simulator that is bumped on
    every hit, fill and eviction, so the recency values of valid lines are
    always distinct and the minimum is the least recently used line.
    """

    def __init__(self, geometry: Geometry):
        self.geometry = geometry
        self.state = CacheState(geometry)
        self.counters = Counters()
        self._clock = 0

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def close(self):
        self.state.release()

    def _tick(self) -> int:
        self._clock += 1
        return self._clock

    def access(self, address: int) -> AccessResult:
        """
        Look up `address`, updating counters and line metadata.
        Returns what happened: hit, or miss with or without an eviction.
        """
        tag, si = self.geometry.split(address)
        valid, tags, recency = self.state.lines(si)
        key = np.uint64(tag)

        matches = np.flatnonzero(valid & (tags == key))
        if matches.size:
            li = int(matches[0])
            recency[li] = self._tick()
            self.counters.hits += 1
            return AccessResult(True, False, tag, si, li)

        self.counters.misses += 1
        free = np.flatnonzero(~valid)
        if free.size:
            # fill the lowest-index empty line
            li = int(free[0])
            valid[li] = True
            evicted = False
        else:
            # argmin returns the first minimum, i.e. the lowest index on ties
            li = int(np.argmin(recency))
            self.counters.evictions += 1
            evicted = True
        tags[li] = key
        recency[li] = self._tick()
        return AccessResult(False, evicted, tag, si, li)

    def snapshot(self):
        return self.counters.as_dict()

    def stats(self):
        return {
            **self.geometry.describe(),
            **self.counters.as_dict(),
            "used_lines": 0 if self.state.released else self.state.occupancy(),
        }
