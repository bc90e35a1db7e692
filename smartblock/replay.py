"""Recorded request streams.

Parses a capture of domain requests into ordered events the classifier can
replay. Two line formats are accepted and can be mixed:

    1.25 graph.facebook.com 192.168.1.50     <seconds> <domain> [client]
    {"timestamp": 1.25, "domain": "graph.facebook.com", "client": "..."}

Blank lines and lines starting with ``#`` are ignored. Timestamps are
seconds on any monotonic scale (e.g., offsets from the start of a capture).
"""

import json
import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Optional, TextIO

logger = logging.getLogger(__name__)

TEXT_LINE_PATTERN = re.compile(
    r"^(\d+(?:\.\d+)?)\s+"  # Seconds
    r"(\S+)"                # Domain
    r"(?:\s+(\S+))?\s*$"    # Optional client
)


class ReplayParseError(ValueError):
    """Raised for a line that is neither format."""

    def __init__(self, line_number: int, line: str, message: str) -> None:
        super().__init__(f"line {line_number}: {message}: {line.strip()[:80]!r}")
        self.line_number = line_number
        self.line = line


@dataclass(frozen=True)
class ReplayEvent:
    """One recorded request."""

    timestamp: float
    domain: str
    client: Optional[str] = None
    line_number: int = 0


def parse_line(line: str, line_number: int = 0) -> Optional[ReplayEvent]:
    """Parse a single capture line.

    Returns:
        ReplayEvent, or None for blank and comment lines

    Raises:
        ReplayParseError: If the line is malformed
    """
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None

    if stripped.startswith("{"):
        return _parse_json_line(stripped, line, line_number)

    match = TEXT_LINE_PATTERN.match(stripped)
    if not match:
        raise ReplayParseError(line_number, line, "expected '<seconds> <domain> [client]'")

    seconds, domain, client = match.groups()
    return ReplayEvent(
        timestamp=float(seconds),
        domain=domain,
        client=client,
        line_number=line_number,
    )


def _parse_json_line(stripped: str, line: str, line_number: int) -> ReplayEvent:
    try:
        data = json.loads(stripped)
    except json.JSONDecodeError as e:
        raise ReplayParseError(line_number, line, f"invalid JSON ({e.msg})") from e

    if not isinstance(data, dict):
        raise ReplayParseError(line_number, line, "JSON line must be an object")

    timestamp = data.get("timestamp")
    if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
        raise ReplayParseError(line_number, line, "missing numeric 'timestamp'")

    # String domains are passed through as-is; the classifier fails closed on junk
    domain = data.get("domain")
    if domain is None:
        raise ReplayParseError(line_number, line, "missing 'domain'")
    if not isinstance(domain, str):
        raise ReplayParseError(line_number, line, "'domain' must be a string")

    client = data.get("client")
    return ReplayEvent(
        timestamp=float(timestamp),
        domain=domain,
        client=str(client) if client is not None else None,
        line_number=line_number,
    )


def iter_events(lines: Iterable[str]) -> Iterator[ReplayEvent]:
    """Parse lines lazily, warning when timestamps go backwards."""
    last: Optional[float] = None
    for line_number, line in enumerate(lines, start=1):
        event = parse_line(line, line_number)
        if event is None:
            continue
        if last is not None and event.timestamp < last:
            logger.warning(
                f"Line {line_number}: timestamp {event.timestamp} is earlier than {last}, "
                "context eviction is skipped for backward jumps"
            )
        last = event.timestamp
        yield event


def read_events(stream: TextIO) -> list[ReplayEvent]:
    """Parse an entire capture."""
    events = list(iter_events(stream))
    logger.info(f"Read {len(events)} events from capture")
    return events
