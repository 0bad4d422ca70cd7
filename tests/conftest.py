"""Shared fakes for automater tests. No test here touches the network."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from automate import EutilsAutomater, OutputListener, ThreadListener
from extract.api_client import SearchResult

PAYLOAD = "<PubmedArticleSet>\n<PubmedArticle/>\n</PubmedArticleSet>"


class FakeClient:
    """
    Stands in for EutilsClient.

    search_failures / fetch_failures are 0-based call indexes that raise
    IOError. Queries listed in ``empty`` return no ids.
    """

    def __init__(self, search_failures=(), fetch_failures=(), empty=(), payload=PAYLOAD, search_error=None):
        self.search_failures = set(search_failures)
        self.fetch_failures = set(fetch_failures)
        self.empty = set(empty)
        self.payload = payload
        self.search_error = search_error
        self.retmax = 20
        self.retmaxes = []
        self.searches = []
        self.fetches = []
        self.closed = False

    def search(self, term, retmax=None):
        index = len(self.searches)
        self.searches.append(term)
        self.retmaxes.append(retmax)
        if self.search_error is not None:
            raise self.search_error
        if index in self.search_failures:
            raise IOError(f"search {index} failed")
        if term in self.empty:
            return SearchResult(count=0, ids=[])
        return SearchResult(count=1, ids=[str(index + 1)])

    def fetch(self, result, handler):
        index = len(self.fetches)
        self.fetches.append(result.ids)
        if index in self.fetch_failures:
            raise IOError(f"fetch {index} failed")
        handler.consume(iter(self.payload.splitlines()))

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class RecordingListener(OutputListener):

    def __init__(self):
        self.data = []
        self.notices = []
        self.errors = []

    def on_data(self, payload):
        self.data.append(payload)

    def on_notice(self, message):
        self.notices.append(message)

    def on_error(self, message):
        self.errors.append(message)


class RecordingThreadListener(ThreadListener):

    def __init__(self):
        self.events = []

    def thread_started(self, automater):
        self.events.append(("started", automater.is_running()))

    def thread_finished(self, automater):
        self.events.append(("finished", automater.is_running()))


@pytest.fixture(autouse=True)
def no_pacing(monkeypatch):
    monkeypatch.setattr(EutilsAutomater, "MIN_SLEEP_INTERVAL", 0)


@pytest.fixture
def run():
    """Start an automater and wait for it to finish."""
    def _run(automater, timeout=10):
        automater.start()
        assert automater.join(timeout), "automater did not finish"
        return automater
    return _run
