"""
Background interval timer with explicit start/stop.
"""
import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RepeatingTimer:
    """
    Calls function every interval seconds on a daemon thread until stopped.

    Exceptions raised by function are logged and the timer keeps running.
    stop() may be called from inside function.
    """

    def __init__(self, interval: float, function: Callable[[], None], name: Optional[str] = None):
        if interval <= 0:
            raise ValueError(f"interval must be > 0, got {interval}")

        self.interval = interval
        self.function = function
        self.name = name or getattr(function, '__name__', 'timer')
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stopped: Optional[threading.Event] = None

    def start(self) -> None:
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._stopped = threading.Event()
            self._thread = threading.Thread(
                target=self._run,
                args=(self._stopped,),
                name=f"travelops-{self.name}",
                daemon=True
            )
            self._thread.start()
            logger.debug(f"Timer '{self.name}' started (every {self.interval}s)")

    def _run(self, stopped: threading.Event) -> None:
        while not stopped.wait(self.interval):
            try:
                self.function()
            except Exception as e:
                logger.exception(f"Timer '{self.name}' callback failed: {e}")

    def stop(self, timeout: float = 1.0) -> None:
        with self._lock:
            thread, stopped = self._thread, self._stopped
            self._thread = None
            self._stopped = None

        if stopped is None:
            return

        stopped.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        logger.debug(f"Timer '{self.name}' stopped")

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._thread is not None and self._thread.is_alive()
