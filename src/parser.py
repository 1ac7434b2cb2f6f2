"""Transaction line parser — frozen dataclass + compiled regex + typed errors.

A Borg ``transactions`` log line looks like::

    transaction 6374, UTC time 2024-11-30T11:45:36.870201
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone

NUMBER_PREFIX = "transaction "
TIME_MARKER = "UTC time"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%f"

_NUMBER_RE = re.compile(r"^[0-9]+$")
# strptime's %f accepts 1-6 digits; the log always writes exactly six
_TIMESTAMP_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{6}$")


class ParseError(ValueError):
    """Base class for lines that don't yield a TransactionRecord."""

    def __init__(self, message: str, line: str):
        super().__init__(message)
        self.line = line


class MalformedLineError(ParseError):
    pass


class BadNumberError(ParseError):
    pass


class BadTimestampError(ParseError):
    pass


@dataclass(frozen=True)
class TransactionRecord:
    sequence_number: int
    timestamp: int  # unix seconds, sub-second part dropped


def parse_transaction_line(line: str) -> TransactionRecord:
    """Parse one transactions log line.

    Raises MalformedLineError, BadNumberError or BadTimestampError.
    """
    parts = line.split(",")
    if len(parts) < 2:
        raise MalformedLineError(f"invalid line format: {line!r}", line)

    number_str = parts[0]
    if number_str.startswith(NUMBER_PREFIX):
        number_str = number_str[len(NUMBER_PREFIX):]
    number_str = number_str.strip()
    if not _NUMBER_RE.match(number_str):
        raise BadNumberError(
            f"failed to parse transaction number: {number_str!r}", line
        )
    sequence_number = int(number_str)

    time_str = parts[1].replace(TIME_MARKER, "").strip()
    if not _TIMESTAMP_RE.match(time_str):
        raise BadTimestampError(f"failed to parse UTC time: {time_str!r}", line)
    try:
        dt = datetime.strptime(time_str, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError as e:
        raise BadTimestampError(f"failed to parse UTC time: {e}", line) from e

    return TransactionRecord(
        sequence_number=sequence_number,
        timestamp=int(dt.timestamp()),
    )
