"""
Automate module - batched ESearch/EFetch runs over a list of terms

Components:
- EutilsAutomater: background worker with retry, pacing and error budget
- OutputListener / ThreadListener: observer interfaces
- terms_as_query: renders a window of terms as an ESearch term string
"""

from .automater import AutomaterState, EutilsAutomater
from .batcher import encode_term, terms_as_query
from .listeners import ListenerRegistry, OutputListener, ThreadListener

__all__ = [
    "AutomaterState",
    "EutilsAutomater",
    "ListenerRegistry",
    "OutputListener",
    "ThreadListener",
    "encode_term",
    "terms_as_query",
]
