"""E-utilities API client with ESearch/EFetch and inline rate limiting."""

import abc
import logging
import time
from dataclasses import dataclass, field
from typing import Iterable, List, Optional
from urllib.parse import quote
import requests


@dataclass
class SearchResult:
    count: int
    ids: List[str] = field(default_factory=list)
    webenv: Optional[str] = None
    query_key: Optional[str] = None


class EutilsResponseError(requests.exceptions.RequestException):
    """A 200 response that carries an NCBI error or cannot be parsed. Retryable like any IOError."""


class PayloadHandler(abc.ABC):
    """Consumes the body of an EFetch response, one text line at a time."""

    @abc.abstractmethod
    def consume(self, lines: Iterable[str]) -> None:
        """Read the payload. Errors raised while reading must propagate."""


class EutilsClient:
    """NCBI E-utilities client: one ESearch or EFetch call per request, no retry."""

    BASE_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"

    def __init__(
        self,
        email: str,
        tool: str = "eutils-automater",
        api_key: Optional[str] = None,
        database: str = "pubmed",
        use_history: bool = False,
        retmode: str = "xml",
        retmax: int = 20,
        verbose: bool = False,
        rate_limit: int = 3,
        timeout: int = 60
    ):
        self.email = email
        self.tool = tool
        self.api_key = api_key
        self.database = database
        self.use_history = use_history
        self.retmode = retmode
        self.retmax = retmax
        self.verbose = verbose
        self.timeout = timeout

        # Inline rate limiting
        self.rate_limit = rate_limit
        self.min_interval = 1.0 / rate_limit
        self.last_request_time = 0.0

        self.session = requests.Session()
        self.base_url = self.BASE_URL
        self.logger = logging.getLogger(__name__)

        self.session.headers.update({
            "User-Agent": f"{tool}/0.1.0 (Python; mailto:{email})"
        })

    @classmethod
    def from_config(cls, config) -> "EutilsClient":
        return cls(
            email=config.email,
            tool=config.tool,
            api_key=config.api_key,
            database=config.database,
            use_history=config.use_history,
            retmode=config.retmode,
            retmax=config.retmax,
            verbose=config.verbose,
            rate_limit=config.rate_limit
        )

    def search(self, term: str, retmax: Optional[int] = None) -> SearchResult:
        """
        Run ESearch for an already-encoded term string.

        The term goes into the URL as-is so that ``%20`` separators built by
        the batcher are not escaped a second time.
        """
        url = f"{self.base_url}/esearch.fcgi?term={quote(term, safe='%,[]/:')}"
        params = self._build_params(
            db=self.database,
            usehistory="y" if self.use_history else "n",
            retmode="json",
            retmax=self.retmax if retmax is None else retmax
        )

        self.logger.info(f"Executing ESearch: {term}")
        response = self._request(url, params)
        if self.verbose:
            self.logger.debug(f"ESearch response: {response.text}")

        try:
            data = response.json()
        except ValueError as e:
            raise EutilsResponseError(f"Malformed ESearch response: {response.text[:200]}") from e

        if not isinstance(data, dict) or "esearchresult" not in data:
            raise EutilsResponseError(f"Malformed ESearch response: {data}")

        result_data = data["esearchresult"]
        # NCBI reports backend failures inside a 200 response
        if "ERROR" in result_data:
            raise EutilsResponseError(f"ESearch error: {result_data['ERROR']}")

        count = int(result_data.get("count", 0))
        ids = [str(uid) for uid in result_data.get("idlist", [])]

        self.logger.info(f"ESearch found {count} total results, {len(ids)} ids returned")
        if count > len(ids) and not self.use_history:
            self.logger.warning(
                f"ESearch matched {count} records but returned {len(ids)}; "
                f"records beyond retmax are not fetched"
            )

        return SearchResult(
            count=count,
            ids=ids,
            webenv=result_data.get("webenv"),
            query_key=result_data.get("querykey")
        )

    def fetch(self, result: SearchResult, handler: PayloadHandler) -> None:
        """Run EFetch for the records of ``result`` and stream the body into ``handler``."""
        url = f"{self.base_url}/efetch.fcgi"
        if self.use_history and result.webenv and result.query_key:
            params = self._build_params(
                db=self.database,
                WebEnv=result.webenv,
                query_key=result.query_key,
                retmax=len(result.ids) or self.retmax,
                retmode=self.retmode
            )
        else:
            params = self._build_params(
                db=self.database,
                id=",".join(result.ids),
                retmode=self.retmode
            )

        self.logger.info(f"Fetching {len(result.ids)} records")
        with self._request(url, params, stream=True) as response:
            if response.encoding is None:
                response.encoding = "utf-8"
            lines = response.iter_lines(decode_unicode=True)
            if self.verbose:
                lines = self._log_lines(lines)
            handler.consume(lines)

    def _log_lines(self, lines: Iterable[str]) -> Iterable[str]:
        for line in lines:
            self.logger.debug(f"EFetch: {line}")
            yield line

    def _wait_if_needed(self) -> None:
        """Rate limiting: block until min_interval has elapsed."""
        elapsed = time.time() - self.last_request_time
        if elapsed < self.min_interval:
            time.sleep(self.min_interval - elapsed)
        self.last_request_time = time.time()

    def _build_params(self, **kwargs) -> dict:
        params = {"email": self.email, "tool": self.tool, **kwargs}
        if self.api_key:
            params["api_key"] = self.api_key
        return params

    def _request(self, url: str, params: dict, stream: bool = False) -> requests.Response:
        """Single GET. Raises requests.exceptions.RequestException (an IOError) on failure."""
        self._wait_if_needed()
        response = self.session.get(url, params=params, timeout=self.timeout, stream=stream)
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError:
            self.logger.warning(f"HTTP {response.status_code} from {url.split('?')[0]}")
            response.close()
            raise
        return response

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        return f"EutilsClient(email={self.email}, db={self.database}, rate={self.rate_limit} req/s)"
