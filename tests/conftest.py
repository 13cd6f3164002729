import ctypes

import pytest

from readahead_monitor.bpf_program import MAX_SLOTS


class HistStruct(ctypes.Structure):
    _fields_ = [
        ("unused", ctypes.c_uint32),
        ("total", ctypes.c_uint32),
        ("slots", ctypes.c_uint32 * MAX_SLOTS),
    ]


def make_hist(total=0, unused=0, slots=()):
    value = HistStruct()
    value.total = total
    value.unused = unused
    for i, v in enumerate(slots):
        value.slots[i] = v
    return value


class FakeBPF:
    """Stands in for bcc.BPF: records probe calls, serves the hist map."""

    def __init__(self, fail_attach=None, fail_detach=None, hist=None):
        self.fail_attach = fail_attach
        self.fail_detach = set(fail_detach or ())
        self.hist = hist if hist is not None else make_hist()
        self.calls = []
        self.live = []
        self.reads = 0
        self.cleaned = False

    def _attach(self, kind, event, fn_name):
        self.calls.append(("attach", kind, event))
        if self.fail_attach == (kind, event):
            raise Exception("cannot attach %s %s" % (kind, event))
        self.live.append((kind, event))

    def _detach(self, kind, event, fn_name):
        self.calls.append(("detach", kind, event))
        self.live.remove((kind, event))
        if (kind, event) in self.fail_detach:
            raise Exception("cannot detach %s %s" % (kind, event))

    def attach_kprobe(self, event, fn_name):
        self._attach("kprobe", event, fn_name)

    def attach_kretprobe(self, event, fn_name):
        self._attach("kretprobe", event, fn_name)

    def detach_kprobe(self, event, fn_name):
        self._detach("kprobe", event, fn_name)

    def detach_kretprobe(self, event, fn_name):
        self._detach("kretprobe", event, fn_name)

    def __getitem__(self, name):
        assert name == "hist"
        self.reads += 1
        return {0: self.hist}

    def cleanup(self):
        self.cleaned = True


class FakeSymbols:
    def __init__(self, *present):
        self.present = set(present)
        self.queries = []

    def resolve(self, name):
        self.queries.append(name)
        return name in self.present


class FakeClock:
    """Monotonic clock advanced only by the fake sleep."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_bpf():
    return FakeBPF()


@pytest.fixture
def clock():
    return FakeClock()
