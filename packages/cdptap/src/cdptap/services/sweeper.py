"""Periodic reclamation of idle sessions.

PUBLIC API:
  - SessionSweeper: Daemon thread that calls SessionManager.gc() on an interval
"""

import logging
import threading

logger = logging.getLogger(__name__)

__all__ = ["SessionSweeper"]


class SessionSweeper:
    """Runs manager.gc() every interval seconds until stopped.

    Attributes:
        interval: Seconds between sweeps.
    """

    def __init__(self, manager, interval: float = 60):
        self.manager = manager
        self.interval = interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the sweep thread. No-op if already running."""
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="cdptap-gc", daemon=True)
        self._thread.start()
        logger.debug(f"Session sweeper started (interval={self.interval}s)")

    def stop(self, timeout: float = 2) -> None:
        self._stop.set()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)
        self._thread = None

    def sweep(self) -> list[str]:
        """Run one gc pass, logging instead of raising."""
        try:
            return self.manager.gc()
        except Exception as e:
            logger.error(f"Session sweep failed: {e}", exc_info=True)
            return []

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.sweep()
