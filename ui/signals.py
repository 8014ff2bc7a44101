"""
Deferred handling of terminating signals while colored output is active.

Once color sequences have been written, interrupting the program halfway
through a colored name would leave the terminal in that color. While color is
active, terminating signals and the terminal stop signal are therefore only
recorded by their handlers. The listing loop processes them at safe points:
the default color is restored, and the signal is replayed with its default
action (or the process is stopped with SIGSTOP).
"""

import os
import signal
from typing import Callable, Protocol, TextIO

from constants import CAUGHT_SIGNAL_NAMES, RESET_COLOR_SEQUENCE, STOP_SIGNAL_NAME
from core.exceptions import OutputWriteError


class SignalCoordinator(Protocol):
    """
    Protocol for the signal handling that accompanies colored output.

    The lifecycle is:
    1. activate() - Called by the writer when it first emits color
    2. process_pending() - Called after every name is written
    3. finish() - Called once at the end of the run
    """

    color_used: bool

    def activate(self) -> None:
        """Note that color is in use and start intercepting signals."""

    def process_pending(self) -> None:
        """Act on signals recorded since the last call."""

    def finish(self) -> None:
        """Flush the output, restore the original handlers, then replay signals."""


class TerminalSignalCoordinator:
    """
    SignalCoordinator using the signal module.

    Attributes:
        stream: The output stream color sequences are written to.
        color_used: True once color has been emitted.
        interrupt_signal: A terminating signal waiting to be replayed, or 0.
        stop_signal_count: Number of stop signals waiting to be replayed.
    """

    def __init__(
        self,
        stream: TextIO,
        signal_names: tuple[str, ...] = CAUGHT_SIGNAL_NAMES,
        raise_signal: Callable[[int], None] = signal.raise_signal,
    ):
        self.stream = stream
        self.color_used = False
        self.interrupt_signal = 0
        self.stop_signal_count = 0
        self._raise_signal = raise_signal
        self._signals = [
            getattr(signal, name) for name in signal_names if hasattr(signal, name)
        ]
        self._stop_signal = getattr(signal, STOP_SIGNAL_NAME, None)
        self._original_handlers: dict[int, object] = {}

    def _owns_terminal(self) -> bool:
        try:
            return os.tcgetpgrp(self.stream.fileno()) >= 0
        except (AttributeError, OSError, ValueError):
            return False

    def _handle(self, signum: int, frame: object) -> None:
        if signum == self._stop_signal:
            if not self.interrupt_signal:
                self.stop_signal_count += 1
        else:
            self.interrupt_signal = signum

    def install(self) -> None:
        """
        Install the recording handler on every caught signal.

        Signals the process inherited as ignored stay ignored.
        """
        for signum in self._signals:
            previous = signal.getsignal(signum)
            if previous == signal.SIG_IGN:
                continue
            self._original_handlers[signum] = previous
            signal.signal(signum, self._handle)

    def restore(self) -> None:
        """Reinstate the handlers that were in place before install()."""
        for signum, handler in self._original_handlers.items():
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)
        self._original_handlers.clear()

    def activate(self) -> None:
        if self.color_used:
            return
        self.color_used = True
        if self._owns_terminal():
            self.install()

    def _reset_color(self, reset: bool = True) -> None:
        try:
            if reset and self.color_used:
                self.stream.write(RESET_COLOR_SEQUENCE)
            self.stream.flush()
        except (OSError, ValueError) as e:
            raise OutputWriteError(original_exception=e) from e

    def process_pending(self) -> None:
        while self.interrupt_signal or self.stop_signal_count:
            self._reset_color()
            previous_mask = signal.pthread_sigmask(signal.SIG_BLOCK, self._signals)

            if self.stop_signal_count:
                self.stop_signal_count -= 1
                signum = signal.SIGSTOP
            else:
                signum = self.interrupt_signal
                self.interrupt_signal = 0
                signal.signal(signum, signal.SIG_DFL)

            # Delivered once the mask is restored; SIGSTOP cannot be blocked.
            self._raise_signal(signum)
            signal.pthread_sigmask(signal.SIG_SETMASK, previous_mask)

    def finish(self) -> None:
        # Every colored name already ends with a reset, so the default color
        # is in effect here and only the stream needs flushing.
        if self.color_used:
            self._reset_color(reset=False)
        self.restore()

        while self.stop_signal_count:
            self.stop_signal_count -= 1
            self._raise_signal(signal.SIGSTOP)

        signum, self.interrupt_signal = self.interrupt_signal, 0
        if signum:
            signal.signal(signum, signal.SIG_DFL)
            self._raise_signal(signum)


class NoOpSignalCoordinator:
    """
    No-op implementation of SignalCoordinator for testing.

    Attributes (for test inspection):
        activate_calls: Number of activate() calls.
        process_calls: Number of process_pending() calls.
        finished: True once finish() has been called.
    """

    def __init__(self) -> None:
        self.color_used = False
        self.activate_calls = 0
        self.process_calls = 0
        self.finished = False

    def activate(self) -> None:
        self.color_used = True
        self.activate_calls += 1

    def process_pending(self) -> None:
        self.process_calls += 1

    def finish(self) -> None:
        self.finished = True
