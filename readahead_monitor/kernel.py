"""
Kernel-facing plumbing: memlock rlimit, BPF program loading and kernel
symbol lookups.

BCC is imported lazily so the rest of the package (variant selection,
attach bookkeeping, reporting) stays importable on hosts without it.
"""

import logging
import resource

from .bpf_program import program_text
from .errors import LoadError, ResourceLimitError

log = logging.getLogger(__name__)


def bump_memlock_rlimit():
    """Lift RLIMIT_MEMLOCK so BPF maps can be created on older kernels."""
    limit = (resource.RLIM_INFINITY, resource.RLIM_INFINITY)
    try:
        resource.setrlimit(resource.RLIMIT_MEMLOCK, limit)
    except (ValueError, OSError) as e:
        raise ResourceLimitError(f"failed to increase rlimit: {e}") from e
    log.debug("RLIMIT_MEMLOCK raised to unlimited")


def _bpf_class():
    try:
        from bcc import BPF
    except ImportError as e:
        raise LoadError(
            f"BCC not found (install python3-bpfcc or python3-bcc): {e}"
        ) from e
    return BPF


def _verbose_debug_flags():
    # Verifier log and instruction dump for every loaded program.
    from bcc import DEBUG_BPF
    return DEBUG_BPF


def load_program(verbose=False, text=None):
    """Compile and load the read-ahead BPF program, returning the BPF object."""
    BPF = _bpf_class()
    debug = _verbose_debug_flags() if verbose else 0
    log.debug("compiling BPF program (debug=0x%x)", debug)
    try:
        bpf = BPF(text=text if text is not None else program_text(), debug=debug)
    except Exception as e:
        raise LoadError(f"failed to open and/or load BPF object: {e}") from e
    log.debug("BPF program loaded")
    return bpf


class KernelSymbols:
    """Presence queries against the running kernel's symbol table."""

    def __init__(self, lookup=None):
        self._lookup = lookup

    def _address(self, name):
        if self._lookup is None:
            self._lookup = _bpf_class().ksymname
        return self._lookup(name)

    def resolve(self, name):
        addr = self._address(name)
        found = addr is not None and addr >= 0
        log.debug("kernel symbol %s: %s", name, "present" if found else "absent")
        return found
