"""Datafeed adapter components."""

from .accounts import AccountResolver
from .adapter import Datafeed
from .bars import BarFetcher
from .bridge import CallbackDatafeed
from .catalog import SymbolCatalog

__all__ = [
    "AccountResolver",
    "BarFetcher",
    "CallbackDatafeed",
    "Datafeed",
    "SymbolCatalog",
]
