"""BPF program (C code loaded into the kernel) and its shared layout."""

MAX_SLOTS = 20

# Function names inside BPF_PROGRAM, referenced by the probe tables.
FN_ENTRY_READAHEAD = "trace_readahead_entry"
FN_EXIT_READAHEAD = "trace_readahead_return"
FN_PAGE_ALLOC_RETURN = "trace_page_cache_alloc_return"
FN_MARK_ACCESSED = "trace_mark_page_accessed"

HIST_MAP = "hist"

BPF_PROGRAM = r"""
#include <uapi/linux/ptrace.h>
#include <linux/mm_types.h>

#define MAX_SLOTS __MAX_SLOTS__

// ── Shared result, read once by userspace after the window ──
struct hist {
    u32 unused;
    u32 total;
    u32 slots[MAX_SLOTS];
};

BPF_HASH(in_readahead, u32, u64);          // tid -> 1 while inside read-ahead
BPF_HASH(birth, struct page *, u64);       // page -> allocation timestamp
BPF_ARRAY(hist, struct hist, 1);

// ════════════════════════════════════════════════════════════════════
// 1. READ-AHEAD ENTRY / RETURN
//    Marks the thread as doing read-ahead so page allocations can be
//    attributed to it.
// ════════════════════════════════════════════════════════════════════

int trace_readahead_entry(struct pt_regs *ctx) {
    u32 tid = bpf_get_current_pid_tgid();
    u64 one = 1;
    in_readahead.update(&tid, &one);
    return 0;
}

int trace_readahead_return(struct pt_regs *ctx) {
    u32 tid = bpf_get_current_pid_tgid();
    in_readahead.delete(&tid);
    return 0;
}

// ════════════════════════════════════════════════════════════════════
// 2. PAGE ALLOCATION (read-ahead pages only)
// ════════════════════════════════════════════════════════════════════

int trace_page_cache_alloc_return(struct pt_regs *ctx) {
    u32 tid = bpf_get_current_pid_tgid();
    struct page *page = (struct page *)PT_REGS_RC(ctx);
    u64 ts;
    int zero = 0;
    struct hist *h;

    if (in_readahead.lookup(&tid) == 0)
        return 0;
    if (page == 0)
        return 0;

    h = hist.lookup(&zero);
    if (h == 0)
        return 0;

    ts = bpf_ktime_get_ns();
    birth.update(&page, &ts);
    __sync_fetch_and_add(&h->unused, 1);
    __sync_fetch_and_add(&h->total, 1);
    return 0;
}

// ════════════════════════════════════════════════════════════════════
// 3. FIRST ACCESS
//    Latency from allocation to first access, log2 bucketed in msecs.
// ════════════════════════════════════════════════════════════════════

int trace_mark_page_accessed(struct pt_regs *ctx) {
    struct page *page = (struct page *)PT_REGS_PARM1(ctx);
    u64 *tsp, delta_ms, slot;
    int zero = 0;
    struct hist *h;

    tsp = birth.lookup(&page);
    if (tsp == 0)
        return 0;

    h = hist.lookup(&zero);
    if (h == 0)
        goto cleanup;

    delta_ms = (bpf_ktime_get_ns() - *tsp) / 1000000;
    slot = delta_ms ? bpf_log2l(delta_ms) : 0;
    if (slot >= MAX_SLOTS)
        slot = MAX_SLOTS - 1;
    __sync_fetch_and_add(&h->unused, -1);
    __sync_fetch_and_add(&h->slots[slot], 1);

cleanup:
    birth.delete(&page);
    return 0;
}
"""


def program_text():
    """BPF_PROGRAM with its build-time constants substituted."""
    return BPF_PROGRAM.replace("__MAX_SLOTS__", str(MAX_SLOTS))
