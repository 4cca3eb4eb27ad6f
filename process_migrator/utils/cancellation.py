"""Cooperative cancellation for long running export and import runs.

A :class:`CancellationToken` is created by the CLI and handed down to the task
runner, which checks it before each remote step. A background listener sets
it when the user presses ``q``.
"""

import os
import select
import sys
import threading

from process_migrator import config

CANCEL_KEY = "q"


class CancellationToken:
    """Thread safe cancellation flag."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


class KeypressListener:
    """Background thread that cancels a token when the cancel key is pressed.

    Only POSIX terminals are supported. Elsewhere the listener does nothing
    and Ctrl+C remains the way to stop a run.
    """

    def __init__(self, token: CancellationToken, stream=None) -> None:
        self.token = token
        self.stream = stream if stream is not None else sys.stdin
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._saved_attributes = None

    def _is_supported(self) -> bool:
        if os.name != "posix":
            return False
        try:
            return self.stream.isatty()
        except (AttributeError, ValueError):
            return False

    def start(self) -> bool:
        """Start listening. Returns False when keypress cancellation is unavailable."""
        if not self._is_supported():
            config.logger.info("Press CTRL+C to cancel the operation.")
            return False

        import termios
        import tty

        fd = self.stream.fileno()
        self._saved_attributes = termios.tcgetattr(fd)
        tty.setcbreak(fd)

        self._thread = threading.Thread(target=self._listen, name="keypress-listener", daemon=True)
        self._thread.start()
        config.logger.info("Press '%s' to cancel the operation.", CANCEL_KEY)
        return True

    def _listen(self) -> None:
        fd = self.stream.fileno()
        while not self._stop.is_set():
            ready, _, _ = select.select([fd], [], [], 0.2)
            if not ready:
                continue
            key = os.read(fd, 1).decode(errors="ignore")
            if key.lower() == CANCEL_KEY:
                config.logger.warning("Cancellation requested, stopping after the current step.")
                self.token.cancel()
                return

    def stop(self) -> None:
        """Stop listening and restore the terminal settings."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=1)
            self._thread = None
        if self._saved_attributes is not None:
            import termios

            termios.tcsetattr(self.stream.fileno(), termios.TCSADRAIN, self._saved_attributes)
            self._saved_attributes = None
