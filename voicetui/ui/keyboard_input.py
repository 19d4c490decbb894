"""Cross-platform single-key input for the terminal UI."""

import sys
import time
import threading
import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.1

KEY_NAMES = {
    " ": "space",
    "\r": "enter",
    "\n": "enter",
    "\x1b": "escape",
    "\x03": "ctrl+c",
    "\x11": "ctrl+q",
}


def normalize_key(raw: str) -> str:
    """Map a raw character to a key name ('space', 'enter', 'q', ...)."""
    return KEY_NAMES.get(raw, raw.lower())


@contextmanager
def cbreak_terminal() -> Iterator[None]:
    """Put a Unix tty into cbreak mode for the duration of the block."""
    if sys.platform == "win32" or not sys.stdin.isatty():
        yield
        return

    import termios
    import tty

    fd = sys.stdin.fileno()
    saved = termios.tcgetattr(fd)
    try:
        tty.setcbreak(fd)
        yield
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)


def read_key(timeout: float = POLL_INTERVAL) -> Optional[str]:
    """Return one pending character, or None if none arrives within timeout."""
    if sys.platform == "win32":
        import msvcrt

        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if msvcrt.kbhit():
                return msvcrt.getwch()
            time.sleep(0.01)
        return None

    import select

    ready, _, _ = select.select([sys.stdin], [], [], timeout)
    if not ready:
        return None
    char = sys.stdin.read(1)
    if not char:
        # EOF on a closed or redirected stdin
        time.sleep(timeout)
        return None
    return char


class KeyboardInputHandler:
    """Reads keys on a background thread and passes their names to a callback.

    The callback returns False to end input (the quit key); `running` then
    turns False so the screen loop can exit.
    """

    def __init__(self, callback: Callable[[str], bool], reader: Callable[[], Optional[str]] = read_key):
        """Initialize keyboard handler.

        Args:
            callback: Takes a key name, returns True to keep reading
            reader: Returns one raw character or None after a short wait
        """
        self.callback = callback
        self.reader = reader
        self.running = False
        self.thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self.running:
            return
        if sys.platform != "win32" and not sys.stdin.isatty():
            logger.warning("stdin is not a terminal, keyboard input disabled")

        self.running = True
        self.thread = threading.Thread(target=self._input_loop, daemon=True)
        self.thread.name = "KeyboardInputThread"
        self.thread.start()
        logger.info("Keyboard input handler started")

    def stop(self) -> None:
        self.running = False
        if self.thread and self.thread is not threading.current_thread():
            self.thread.join(timeout=1.0)
        logger.info("Keyboard input handler stopped")

    def _input_loop(self) -> None:
        try:
            with cbreak_terminal():
                while self.running:
                    raw = self.reader()
                    if not raw:
                        continue
                    key = normalize_key(raw)
                    logger.debug(f"Key pressed: '{key}'")
                    if not self.callback(key):
                        break
        except Exception as e:
            logger.error(f"Error in input loop: {e}")
        finally:
            self.running = False
            logger.info("Keyboard input loop ended")
