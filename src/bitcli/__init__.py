"""Command-line URL shortener backed by the Bitly API."""

APP = "bitcli"

__all__ = ["APP"]
