"""Observer interfaces and the thread-safe registry used to notify them."""

import abc
import logging
import threading
from typing import Generic, List, TypeVar

logger = logging.getLogger(__name__)

L = TypeVar("L")


class OutputListener(abc.ABC):
    """
    Receives output from an automater run.

    on_data is not called when a custom payload handler is installed.
    """

    @abc.abstractmethod
    def on_data(self, payload: str) -> None:
        ...

    def on_notice(self, message: str) -> None:
        pass

    def on_error(self, message: str) -> None:
        pass


class ThreadListener(abc.ABC):
    """Told when the automater worker thread starts and finishes."""

    def thread_started(self, automater) -> None:
        pass

    def thread_finished(self, automater) -> None:
        pass


class ListenerRegistry(Generic[L]):
    """
    Ordered set of listeners, safe to mutate while notifications are running.

    fire() works on a snapshot taken under the lock, so listeners added or
    removed mid-notification take effect on the next call.
    """

    def __init__(self):
        self._listeners: List[L] = []
        self._lock = threading.Lock()

    def add(self, listener: L) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove(self, listener: L) -> None:
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

    def snapshot(self) -> List[L]:
        with self._lock:
            return list(self._listeners)

    def fire(self, method: str, *args) -> None:
        for listener in self.snapshot():
            try:
                getattr(listener, method)(*args)
            except Exception:
                logger.exception(f"Listener {listener!r} failed in {method}")

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)
