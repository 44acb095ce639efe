from __future__ import annotations

import sys
from typing import Iterable, Iterator, Optional, TextIO


def iter_input_urls(lines: Iterable[str]) -> Iterator[str]:
    """Yield one URL per non-blank line, skipping '#' comments."""
    for line in lines:
        url = line.strip()
        if not url or url.startswith("#"):
            continue
        yield url


def read_stdin_urls(stream: Optional[TextIO] = None) -> Optional[list[str]]:
    """
    Read URLs from stdin when it is piped.

    Returns None if stdin is an interactive terminal, so the caller can report
    that no input was given instead of blocking on the keyboard.
    """
    stream = stream if stream is not None else sys.stdin
    if stream.isatty():
        return None
    return list(iter_input_urls(stream))
