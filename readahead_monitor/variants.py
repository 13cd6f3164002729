"""
Attach-point tables and kernel-version variant selection.

From v5.10-rc1 (8238287) __do_page_cache_readahead() was renamed to
do_page_cache_ra(); only one of the two exists in a running kernel.
"""

import enum
import logging
from dataclasses import dataclass

from .bpf_program import (
    FN_ENTRY_READAHEAD,
    FN_EXIT_READAHEAD,
    FN_MARK_ACCESSED,
    FN_PAGE_ALLOC_RETURN,
)
from .errors import UnsupportedKernelError

log = logging.getLogger(__name__)

KPROBE = "kprobe"
KRETPROBE = "kretprobe"


@dataclass(frozen=True)
class ProbePoint:
    """One kernel instrumentation point and the BPF function bound to it."""

    kind: str
    event: str
    fn_name: str

    def attach(self, bpf):
        if self.kind == KPROBE:
            bpf.attach_kprobe(event=self.event, fn_name=self.fn_name)
        elif self.kind == KRETPROBE:
            bpf.attach_kretprobe(event=self.event, fn_name=self.fn_name)
        else:
            raise ValueError(f"unknown probe kind: {self.kind!r}")

    def detach(self, bpf):
        if self.kind == KPROBE:
            bpf.detach_kprobe(event=self.event, fn_name=self.fn_name)
        else:
            bpf.detach_kretprobe(event=self.event, fn_name=self.fn_name)

    def __str__(self):
        return f"{self.kind} {self.event}"


def _readahead_pair(symbol):
    return (
        ProbePoint(KPROBE, symbol, FN_ENTRY_READAHEAD),
        ProbePoint(KRETPROBE, symbol, FN_EXIT_READAHEAD),
    )


class AttachVariant(enum.Enum):
    """Which read-ahead entry point the running kernel exposes."""

    DO_PAGE_CACHE_RA = "do_page_cache_ra"
    DO_PAGE_CACHE_READAHEAD = "__do_page_cache_readahead"

    @property
    def symbol(self):
        return self.value

    @property
    def points(self):
        return VARIANT_POINTS[self]


# Checked in this order; the first whose symbol exists wins.
VARIANT_POINTS = {
    AttachVariant.DO_PAGE_CACHE_RA: _readahead_pair("do_page_cache_ra"),
    AttachVariant.DO_PAGE_CACHE_READAHEAD: _readahead_pair("__do_page_cache_readahead"),
}

# Attached after the variant pair on every kernel.
COMMON_POINTS = (
    ProbePoint(KRETPROBE, "__page_cache_alloc", FN_PAGE_ALLOC_RETURN),
    ProbePoint(KPROBE, "mark_page_accessed", FN_MARK_ACCESSED),
)


def points_for(variant):
    """Full ordered attach list for a variant."""
    return tuple(variant.points) + COMMON_POINTS


def select_variant(resolver):
    """Pick the variant whose read-ahead symbol is present in the kernel."""
    for variant in VARIANT_POINTS:
        if resolver.resolve(variant.symbol):
            log.debug("selected attach variant %s", variant.name)
            return variant
    raise UnsupportedKernelError(v.symbol for v in VARIANT_POINTS)
