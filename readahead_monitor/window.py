"""Bounded, cancellable observation window."""

import logging
import signal
import time

log = logging.getLogger(__name__)

POLL_INTERVAL_S = 0.1


class CancellationToken:
    """Flag set from a signal handler and polled by the window."""

    def __init__(self):
        self._cancelled = False
        self._previous = {}

    @property
    def cancelled(self):
        return self._cancelled

    def cancel(self):
        self._cancelled = True

    def install(self, signals=(signal.SIGINT, signal.SIGTERM)):
        def handler(signum, frame):
            log.debug("received signal %d, ending window", signum)
            self.cancel()

        for signum in signals:
            self._previous[signum] = signal.signal(signum, handler)
        return self

    def restore(self):
        """Put back the handlers that were active before install()."""
        for signum, previous in self._previous.items():
            if previous is not None:
                signal.signal(signum, previous)
        self._previous.clear()


class ObservationWindow:
    """
    Sleep for ``duration`` seconds, or until the token is cancelled.

    ``duration=None`` waits for cancellation only. The token is checked
    every ``interval`` seconds, so cancellation takes effect within one step.
    """

    def __init__(self, duration, token, interval=POLL_INTERVAL_S,
                 clock=time.monotonic, sleep=time.sleep):
        if duration is not None and duration <= 0:
            raise ValueError(f"duration must be positive, got {duration!r}")
        self.duration = duration
        self.token = token
        self.interval = interval
        self._clock = clock
        self._sleep = sleep

    def run(self):
        """Block for the window. Returns True if it was cancelled early."""
        start = self._clock()
        while not self.token.cancelled:
            if self.duration is None:
                step = self.interval
            else:
                remaining = self.duration - (self._clock() - start)
                if remaining <= 0:
                    break
                step = min(self.interval, remaining)
            try:
                self._sleep(step)
            except KeyboardInterrupt:
                self.token.cancel()
        elapsed = self._clock() - start
        log.debug("observation window closed after %.1fs", elapsed)
        return self.token.cancelled
