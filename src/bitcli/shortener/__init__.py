"""Cache-through, concurrency-bounded shortening pipeline."""

from bitcli.shortener.context import AppContext
from bitcli.shortener.gate import ConcurrencyGate, Permit
from bitcli.shortener.pipeline import ShortenerPipeline

__all__ = ["AppContext", "ConcurrencyGate", "Permit", "ShortenerPipeline"]
