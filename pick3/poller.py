import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class LivePoller:
    """Runs ``tick`` right away and then every ``interval`` seconds on a daemon thread.

    ``stop`` sets the event the loop waits on; the loop exits without
    starting another tick. Pass ``wait=True`` to also join the thread.
    A tick still running when the next one is due is skipped.
    """

    def __init__(self, tick: Callable[[], None], interval: float, name: str = "live-poller"):
        self.tick = tick
        self.interval = interval
        self.name = name
        self._stop = threading.Event()
        self._busy = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop.is_set()

    def start(self) -> None:
        if self.running:
            return
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, args=(self._stop,), name=self.name, daemon=True)
        self._thread.start()
        logger.debug("[%s] started, every %ss", self.name, self.interval)

    def stop(self, wait: bool = False, timeout: Optional[float] = None) -> None:
        self._stop.set()
        thread = self._thread
        if wait and thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def run_once(self) -> bool:
        """Run one tick unless another is in flight; returns whether it ran."""
        if not self._busy.acquire(blocking=False):
            logger.debug("[%s] tick skipped, previous one still running", self.name)
            return False
        try:
            self.tick()
        except Exception:
            logger.exception("[%s] tick failed", self.name)
        finally:
            self._busy.release()
        return True

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            self.run_once()
            if stop_event.wait(self.interval):
                break
