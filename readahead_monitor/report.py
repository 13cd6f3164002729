"""Snapshot of the shared `hist` map, its invariants, and the text report."""

import logging
from dataclasses import dataclass
from typing import List, Tuple

from .bpf_program import HIST_MAP, MAX_SLOTS

log = logging.getLogger(__name__)

STARS_MAX = 40


@dataclass(frozen=True)
class HistogramSnapshot:
    total: int
    unused: int
    slots: Tuple[int, ...]

    @classmethod
    def from_struct(cls, value):
        """Build from the ctypes `struct hist` value BCC hands back."""
        return cls(
            total=int(value.total),
            unused=int(value.unused),
            slots=tuple(int(v) for v in value.slots),
        )

    def violations(self) -> List[str]:
        problems = []
        if self.total < 0:
            problems.append(f"negative total: {self.total}")
        if self.unused < 0:
            problems.append(f"negative unused: {self.unused}")
        if self.unused > self.total:
            problems.append(f"unused ({self.unused}) exceeds total ({self.total})")
        if len(self.slots) != MAX_SLOTS:
            problems.append(f"expected {MAX_SLOTS} slots, got {len(self.slots)}")
        for i, count in enumerate(self.slots):
            if count < 0:
                problems.append(f"negative count {count} in slot {i}")
        return problems

    @property
    def is_valid(self):
        return not self.violations()

    def render(self, val_type="msecs"):
        for problem in self.violations():
            log.warning("inconsistent readahead snapshot: %s", problem)
        lines = [f"Readahead unused/total pages: {self.unused}/{self.total}"]
        lines.extend(format_log2_hist(self.slots, val_type))
        return "\n".join(lines)


def read_snapshot(bpf):
    """Read the single `hist` entry. Only call this after the window closes."""
    table = bpf[HIST_MAP]
    return HistogramSnapshot.from_struct(table[0])


def _stars(val, val_max, width):
    if val_max <= 0:
        return ""
    n = min(val, val_max) * width // val_max
    text = "*" * n
    if val > val_max:
        text = text[:-1] + "+"
    return text


def bucket_bounds(i):
    """Printed (low, high) for bucket i; bucket i>0 covers [2^(i-1), 2^i)."""
    if i == 0:
        return 0, 0
    return 1 << (i - 1), (1 << i) - 1


def format_log2_hist(slots, val_type="msecs"):
    """
    Render slots as a log2 histogram, one line per bucket.

    Output stops at the highest non-empty bucket. Bucket 0 (zero latency)
    is only shown when it holds something. All-zero input renders nothing.
    """
    counts = [max(int(v), 0) for v in slots]
    idx_max = -1
    for i, v in enumerate(counts):
        if v > 0:
            idx_max = i
    if idx_max < 0:
        return []

    if idx_max <= 32:
        pad, label_w, width, stars = 5, 19, 10, STARS_MAX
    else:
        pad, label_w, width, stars = 15, 29, 20, STARS_MAX // 2

    val_max = max(counts)
    first = 0 if counts[0] > 0 else 1
    lines = [f"{'':{pad}}{val_type:<{label_w}} : count     distribution"]
    for i in range(first, idx_max + 1):
        low, high = bucket_bounds(i)
        val = counts[i]
        bar = _stars(val, val_max, stars)
        lines.append(f"{low:>{width}} -> {high:<{width}} : {val:<8} |{bar:<{stars}}|")
    return lines
