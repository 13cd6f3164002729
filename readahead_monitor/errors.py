"""Fatal conditions of a tracing run. Each one maps to exit status 1."""


class ReadaheadError(Exception):
    """Base class for every failure that aborts a run."""

    exit_code = 1


class ResourceLimitError(ReadaheadError):
    """RLIMIT_MEMLOCK could not be raised for the BPF maps."""


class LoadError(ReadaheadError):
    """The BPF program could not be compiled or loaded."""


class UnsupportedKernelError(ReadaheadError):
    """None of the known read-ahead entry points exist in this kernel."""

    def __init__(self, symbols):
        self.symbols = tuple(symbols)
        super().__init__(
            f"failed to find symbol: {'/'.join(self.symbols)}, unsupported kernel version"
        )


class AttachmentError(ReadaheadError):
    """A single probe point failed to attach; the group was rolled back."""

    def __init__(self, point, cause):
        self.point = point
        self.cause = cause
        super().__init__(f"failed to attach {point}: {cause}")
