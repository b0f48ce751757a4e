"""Background polling for file configuration changes."""

import logging
import threading
from collections.abc import Iterable
from typing import Protocol

logger = logging.getLogger(__name__)


class SupportsChangeCheck(Protocol):
    def check_for_changes(self) -> bool: ...


class FileChangePoller:
    """Daemon thread calling ``check_for_changes()`` on each target every ``interval`` seconds.

    Reload callbacks run synchronously on the poller thread. A failing check
    is logged and polling continues.
    """

    def __init__(self, targets: Iterable[SupportsChangeCheck], interval: float = 1.0):
        if interval <= 0:
            raise ValueError("Polling interval must be positive")
        self.targets = list(targets)
        self.interval = interval
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._run, name="protected-config-file-poller", daemon=True
        )
        self._thread.start()
        logger.debug(f"Started file change poller (interval={self.interval}s)")

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval):
            self.poll()

    def poll(self) -> list[SupportsChangeCheck]:
        """Check every target once; return those which changed."""
        changed = []
        for target in self.targets:
            try:
                if target.check_for_changes():
                    changed.append(target)
            except Exception as e:
                logger.error(f"Error reloading configuration from {target!r}: {e}")
        return changed

    def stop(self) -> None:
        self._stop_event.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.interval + 1)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
