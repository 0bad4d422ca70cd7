"""Render windows of search terms as ESearch term strings."""

import re
from typing import Sequence

_WHITESPACE = re.compile(r"\s+")


def encode_term(term: str) -> str:
    return _WHITESPACE.sub("%20", term.strip())


def terms_as_query(terms: Sequence[str], start: int, count: int) -> str:
    """
    Comma-join terms[start:start + count], each trimmed with inner whitespace
    runs replaced by %20.

    Bounds are the caller's responsibility.
    """
    return ",".join(encode_term(term) for term in terms[start:start + count])
