"""
Clipboard collaborator — Place a secret on the system clipboard.

``place(secret, clear_after)`` copies ``secret`` and, unless ``clear_after``
is None, schedules a clear after that many seconds. Placing a new secret
cancels any clear still pending from the previous one, so an earlier
timer can never wipe a later secret. The scheduled clear only empties the
clipboard if it still holds the secret it was scheduled for; anything the
user copied in the meantime is left alone.

The clear runs on a non-daemon ``threading.Timer``: a short-lived CLI
process stays alive until the clipboard has been cleared.
"""
import logging
import threading
from typing import Optional

import pyperclip

from .exceptions import ClipboardUnavailable

logger = logging.getLogger("lockbox.clipboard")


class SecretClipboard:
    """Clipboard writer owning at most one pending clear."""

    def __init__(self, daemon: bool = False):
        self._daemon = daemon
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None and self._timer.is_alive()

    def place(self, secret: str, clear_after: Optional[float] = None) -> None:
        """Copy ``secret`` and optionally clear it after ``clear_after`` seconds.

        Raises:
            ClipboardUnavailable: No clipboard mechanism is available.
        """
        self.cancel()
        try:
            pyperclip.copy(secret)
        except pyperclip.PyperclipException as err:
            raise ClipboardUnavailable(str(err)) from None
        if clear_after is None:
            logger.debug("Secret copied to clipboard, no auto-clear")
            return
        timer = threading.Timer(clear_after, self._clear_if_unchanged, args=(secret,))
        timer.daemon = self._daemon
        with self._lock:
            self._timer = timer
        timer.start()
        logger.debug("Secret copied to clipboard, clearing in %ss", clear_after)

    def cancel(self) -> None:
        """Cancel the pending clear, if any."""
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until the pending clear has run."""
        with self._lock:
            timer = self._timer
        if timer is not None:
            timer.join(timeout)

    def _clear_if_unchanged(self, secret: str) -> None:
        try:
            if pyperclip.paste() == secret:
                pyperclip.copy("")
                logger.debug("Clipboard cleared")
        except pyperclip.PyperclipException as err:
            logger.warning("Could not clear clipboard: %s", err)


_clipboard = SecretClipboard()


def place(secret: str, clear_after: Optional[float] = None) -> None:
    """Place ``secret`` on the process-wide clipboard writer."""
    _clipboard.place(secret, clear_after)


def wait(timeout: Optional[float] = None) -> None:
    _clipboard.wait(timeout)
