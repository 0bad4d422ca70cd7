"""
Batch search terms through ESearch/EFetch on a background thread.

Terms are sent to NCBI ``max_retrieval`` at a time. Each window is searched,
the matching records are fetched, and the fetched text is handed to the
output listeners (or printed when none are registered). A custom payload
handler installed with ``set_parser`` replaces that default delivery.

Failed calls are retried on the same window after the pacing delay. Every
failure counts against ``max_error_count``; one more than that ends the run
with a single ``on_error`` notification.

An automater runs once. Create a new instance for each batch of terms.
"""

import enum
import logging
import threading
from typing import Iterable, Optional, Sequence

from config import ConfigManager
from extract.api_client import EutilsClient, PayloadHandler, SearchResult
from .batcher import terms_as_query
from .listeners import ListenerRegistry, OutputListener, ThreadListener

logger = logging.getLogger(__name__)


class AutomaterState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


class EutilsAutomater(PayloadHandler):

    # NCBI asks for at least 3 seconds between unattended queries.
    MIN_SLEEP_INTERVAL = 3.0
    MAX_RETRIEVAL_LIMIT = 100

    def __init__(
        self,
        terms: Sequence[str],
        client: Optional[EutilsClient] = None,
        config: Optional[ConfigManager] = None
    ):
        terms = tuple(terms)
        if len(terms) < 1:
            raise ValueError("Cannot perform an automated query on < 1 terms.")

        self.search_terms = terms
        self.config = config or ConfigManager()
        # A client built here is closed when the run ends; a caller-supplied one is not
        self._owns_client = client is None
        self.client = client or EutilsClient.from_config(self.config)

        self.state = AutomaterState.IDLE
        self.error_count = 0
        self._state_lock = threading.Lock()
        self._pause = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self.max_retrieval = 1
        self.max_error_count = 4
        self.set_max_retrieval(self.config.max_retrieval)
        self.set_max_error_count(self.config.max_error_count)

        self.output_listeners: ListenerRegistry[OutputListener] = ListenerRegistry()
        self.thread_listeners: ListenerRegistry[ThreadListener] = ListenerRegistry()
        self.parser: Optional[PayloadHandler] = None

    # Configuration

    def set_max_retrieval(self, maximum: int) -> None:
        """
        Number of terms sent to NCBI in one search. Useful for single-record
        terms such as accession numbers. Capped at 100 because large fetches
        fail more often.
        """
        if maximum < 1 or maximum > self.MAX_RETRIEVAL_LIMIT:
            raise ValueError("Maximum retrieval must be between 1 and 100.")
        self.max_retrieval = maximum

    def set_max_error_count(self, count: int) -> None:
        """Failures tolerated before the run aborts. Cannot change once started."""
        if self.state is not AutomaterState.IDLE:
            raise RuntimeError("Cannot set the max error count after the automater has started")
        if count < 1:
            raise ValueError("Maximum error count must be greater than zero.")
        self.max_error_count = count

    def set_parser(self, parser: Optional[PayloadHandler]) -> None:
        """
        Route EFetch output to ``parser`` instead of the output listeners.
        None restores the default. Notices and errors still reach listeners.
        """
        self.parser = parser

    def add_output_listener(self, listener: OutputListener) -> None:
        self.output_listeners.add(listener)

    def remove_output_listener(self, listener: OutputListener) -> None:
        self.output_listeners.remove(listener)

    def add_thread_listener(self, listener: ThreadListener) -> None:
        self.thread_listeners.add(listener)

    def remove_thread_listener(self, listener: ThreadListener) -> None:
        self.thread_listeners.remove(listener)

    # Lifecycle

    def start(self) -> None:
        """Launch the worker thread and return immediately."""
        with self._state_lock:
            if self.state is not AutomaterState.IDLE:
                raise RuntimeError("An automater can only be started once")
            self.state = AutomaterState.RUNNING
            self._thread = threading.Thread(target=self._run, name="eutils-automater")
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the worker. Returns True once it has finished."""
        if self._thread is None:
            return False
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def is_running(self) -> bool:
        return self.state is AutomaterState.RUNNING

    def wake(self) -> None:
        """
        End the current pacing delay early. The loop carries on as if it had elapsed.

        Has no effect outside a delay: a wake during a search or fetch is dropped.
        """
        self._pause.set()

    # Worker

    def _run(self) -> None:
        self.thread_listeners.fire("thread_started", self)
        try:
            completed = self._run_batches()
        except Exception as e:
            logger.exception("Automater worker failed")
            self._fire_error(f"Unexpected error - terminating queries: {e}")
            completed = False
        finally:
            if self._owns_client:
                self.client.close()

        with self._state_lock:
            self.state = AutomaterState.COMPLETED if completed else AutomaterState.ABORTED
        logger.info(
            f"Automater {self.state.value}: {len(self.search_terms)} terms, "
            f"{self.error_count} errors"
        )
        self.thread_listeners.fire("thread_finished", self)

    def _run_batches(self) -> bool:
        total = len(self.search_terms)
        size = self.max_retrieval
        offset = 0

        while offset + size <= total:
            if not self._process_window(offset, size):
                return False
            offset += size

        # Whatever is left is shorter than a full window; send it as one final batch.
        if offset < total:
            if not self._process_window(offset, total - offset):
                return False

        return True

    def _process_window(self, start: int, count: int) -> bool:
        """Search and fetch one window, retrying until it succeeds or the error budget runs out."""
        query = terms_as_query(self.search_terms, start, count)
        logger.info(f"Window {start + 1}-{start + count} of {len(self.search_terms)}: {query}")

        while True:
            try:
                # one id per term at least, so accession batches are not cut short
                result = self.client.search(query, retmax=max(self.client.retmax, count))
            except IOError as e:
                if self._record_failure("ESearch", query, e):
                    return False
                continue

            if not result.ids:
                logger.info(f"No records found for: {query}")
                self._sleep()
                return True

            try:
                self._fetch(result)
            except IOError as e:
                if self._record_failure("EFetch", query, e):
                    return False
                continue

            self._sleep()
            return True

    def _fetch(self, result: SearchResult) -> None:
        handler = self.parser if self.parser is not None else self
        self.client.fetch(result, handler)

    def _record_failure(self, call: str, query: str, error: Exception) -> bool:
        """Count a failed call. Returns True when the run must stop."""
        self.error_count += 1
        logger.warning(f"{call} failed for '{query}' ({self.error_count}/{self.max_error_count}): {error}")
        if self._error_max_exceeded():
            return True
        self._fire_notice(f"{call} failed for '{query}', retrying: {error}")
        self._sleep()
        return False

    def _error_max_exceeded(self) -> bool:
        if self.error_count > self.max_error_count:
            self._fire_error("Maximum error count exceeded - terminating queries.")
            return True
        return False

    def _sleep(self) -> None:
        self._pause.clear()
        self._pause.wait(self.MIN_SLEEP_INTERVAL)

    # Default payload handling

    def consume(self, lines: Iterable[str]) -> None:
        """
        Read the whole EFetch payload and send it as one string to the output
        listeners, or print it if there are none. Read errors propagate.
        """
        payload = "".join(f"{line}\n" for line in lines)
        if len(self.output_listeners) == 0:
            print(payload, end="")
        else:
            self._fire_data(payload)

    def _fire_data(self, payload: str) -> None:
        self.output_listeners.fire("on_data", payload)

    def _fire_notice(self, message: str) -> None:
        self.output_listeners.fire("on_notice", message)

    def _fire_error(self, message: str) -> None:
        self.output_listeners.fire("on_error", message)

    def __repr__(self) -> str:
        return f"EutilsAutomater(terms={len(self.search_terms)}, state={self.state.value})"
