"""Streaming last-line extraction for append-only transaction logs."""

import os
from typing import Iterable

TRANSACTIONS_FILENAME = "transactions"


def transactions_path(repo: str) -> str:
    return os.path.join(repo, TRANSACTIONS_FILENAME)


def last_non_empty_line(lines: Iterable[str]) -> str:
    """Return the last non-blank line (without its line ending), or "" if none.

    Only the current and last-seen line are held in memory.
    """
    last = ""
    for line in lines:
        stripped = line.rstrip("\r\n")
        if stripped.strip():
            last = stripped
    return last


def read_last_line(filepath: str) -> str:
    """Open *filepath*, stream it, and return its last non-blank line.

    Undecodable bytes are replaced rather than raised, so only the last
    line decides whether the log is usable. The file is closed before
    this returns. Raises OSError if it can't be opened or read.
    """
    with open(filepath, "r", encoding="utf-8", errors="replace") as f:
        return last_non_empty_line(f)
