import resource
import sys

import pytest

from readahead_monitor import kernel
from readahead_monitor.bpf_program import (
    FN_ENTRY_READAHEAD,
    FN_EXIT_READAHEAD,
    FN_MARK_ACCESSED,
    FN_PAGE_ALLOC_RETURN,
    MAX_SLOTS,
    program_text,
)
from readahead_monitor.errors import LoadError, ResourceLimitError


def test_symbol_presence():
    table = {"do_page_cache_ra": 0xffffffff81234560}
    symbols = kernel.KernelSymbols(lookup=lambda name: table.get(name, -1))
    assert symbols.resolve("do_page_cache_ra")
    assert not symbols.resolve("__do_page_cache_readahead")


def test_rlimit_failure(monkeypatch):
    def deny(which, limits):
        raise ValueError("not allowed to raise maximum limit")

    monkeypatch.setattr(resource, "setrlimit", deny)
    with pytest.raises(ResourceLimitError, match="failed to increase rlimit"):
        kernel.bump_memlock_rlimit()


def test_rlimit_raised(monkeypatch):
    calls = []
    monkeypatch.setattr(resource, "setrlimit", lambda which, limits: calls.append((which, limits)))
    kernel.bump_memlock_rlimit()
    assert calls == [(resource.RLIMIT_MEMLOCK, (resource.RLIM_INFINITY, resource.RLIM_INFINITY))]


def test_missing_bcc_is_load_error(monkeypatch):
    monkeypatch.setitem(sys.modules, "bcc", None)
    with pytest.raises(LoadError, match="BCC not found"):
        kernel.load_program()


def test_compile_failure_is_load_error(monkeypatch):
    class BrokenBPF:
        def __init__(self, text, debug=0):
            raise Exception("Failed to compile BPF module <text>")

    monkeypatch.setattr(kernel, "_bpf_class", lambda: BrokenBPF)
    with pytest.raises(LoadError, match="failed to open and/or load BPF object"):
        kernel.load_program()


def test_load_passes_program_text(monkeypatch):
    seen = {}

    class RecordingBPF:
        def __init__(self, text, debug=0):
            seen["text"] = text
            seen["debug"] = debug

    monkeypatch.setattr(kernel, "_bpf_class", lambda: RecordingBPF)
    assert isinstance(kernel.load_program(), RecordingBPF)
    assert seen["text"] == program_text()
    assert seen["debug"] == 0


def test_program_text_defines_probe_functions():
    text = program_text()
    assert "#define MAX_SLOTS %d" % MAX_SLOTS in text
    for fn in (FN_ENTRY_READAHEAD, FN_EXIT_READAHEAD, FN_PAGE_ALLOC_RETURN, FN_MARK_ACCESSED):
        assert "int %s(struct pt_regs *ctx)" % fn in text


def test_verbose_enables_bcc_debug_output(monkeypatch):
    seen = {}

    class RecordingBPF:
        def __init__(self, text, debug=0):
            seen["debug"] = debug

    monkeypatch.setattr(kernel, "_bpf_class", lambda: RecordingBPF)
    monkeypatch.setattr(kernel, "_verbose_debug_flags", lambda: 0x2)
    kernel.load_program(verbose=True)
    assert seen["debug"] == 0x2
