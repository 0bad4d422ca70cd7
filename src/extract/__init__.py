"""
Extract module - E-utilities API interaction

Components for extracting data from the NCBI E-utilities API:
- EutilsClient: ESearch and EFetch operations with inline rate limiting
- PayloadHandler: strategy interface for consuming EFetch output
"""

from .api_client import EutilsClient, EutilsResponseError, PayloadHandler, SearchResult

__all__ = [
    "EutilsClient",
    "EutilsResponseError",
    "PayloadHandler",
    "SearchResult",
]
