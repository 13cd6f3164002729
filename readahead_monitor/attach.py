"""All-or-nothing attachment of a probe group, with reverse-order teardown."""

import logging

from .errors import AttachmentError
from .variants import points_for

log = logging.getLogger(__name__)


class InstrumentationHandle:
    """A probe point that is currently attached to a loaded program."""

    def __init__(self, bpf, point):
        self.bpf = bpf
        self.point = point
        self.attached = True

    def detach(self):
        if not self.attached:
            return
        self.attached = False
        self.point.detach(self.bpf)


class ProbeGroup:
    """
    Owns every handle attached during a run.

    Handles are kept on a stack in attach order. Both a failed attach and
    teardown unwind that stack from the top, each handle exactly once.
    Detach errors are logged and never raised: by the time they happen the
    run is already ending, and raising would hide the original failure.
    """

    def __init__(self, bpf):
        self.bpf = bpf
        self._stack = []

    @property
    def attached(self):
        return [h for h in self._stack if h.attached]

    def attach_all(self, variant):
        for point in points_for(variant):
            try:
                point.attach(self.bpf)
            except Exception as e:
                log.debug("attach of %s failed, rolling back %d point(s)",
                          point, len(self._stack))
                self.detach_all()
                raise AttachmentError(point, e) from e
            log.debug("attached %s -> %s", point, point.fn_name)
            self._stack.append(InstrumentationHandle(self.bpf, point))
        return tuple(self._stack)

    def detach_all(self):
        while self._stack:
            handle = self._stack.pop()
            try:
                handle.detach()
            except Exception as e:
                log.warning("failed to detach %s: %s", handle.point, e)
            else:
                log.debug("detached %s", handle.point)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.detach_all()
        return False
