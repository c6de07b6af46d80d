"""Background polling of remote playback state.

Remote devices push state changes irregularly, so the session also pulls a
snapshot on a fixed interval while the remote path is active.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from listening_lab.utils.constant import REMOTE_POLL_INTERVAL_SEC

logger = logging.getLogger(__name__)

__all__ = ["StatePoller"]


class StatePoller:
    """Threaded poller calling *poll_fn* every *interval_sec* seconds.

    Attributes:
        interval_sec: Polling interval in seconds.

    Example:
        >>> poller = StatePoller(source.poll, interval_sec=1.0)
        >>> poller.start()
        >>> poller.stop()
    """

    def __init__(
        self,
        poll_fn: Callable[[], object],
        interval_sec: float = REMOTE_POLL_INTERVAL_SEC,
    ) -> None:
        """Initialize the poller.

        Args:
            poll_fn: Callable invoked on each tick.
            interval_sec: Time between polls in seconds (default: 1.0).

        Raises:
            ValueError: If ``interval_sec`` is not positive.
        """
        if interval_sec <= 0:
            raise ValueError("interval_sec must be > 0")
        self.interval_sec = interval_sec
        self._poll_fn = poll_fn
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    @property
    def is_running(self) -> bool:
        """Whether the polling thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start polling in a background thread; no-op when already running."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._poll_loop, daemon=True)
        self._thread.start()
        logger.debug(f"State poller started (interval={self.interval_sec}s)")

    def stop(self) -> None:
        """Stop polling and wait for the thread to finish.

        Safe to call even if the poller was never started.
        """
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join(timeout=5.0)
        self._thread = None
        logger.debug("State poller stopped")

    def _poll_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self._poll_fn()
            except Exception as e:
                logger.warning(f"Playback state poll failed: {e}")
            self._stop_event.wait(timeout=self.interval_sec)
