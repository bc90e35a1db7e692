"""Time-windowed record of recent domain accesses.

The history answers one question for the classifier: did the user reach a
legitimate (non-restricted, non-primary-social) site recently enough that a
social-media dependency is probably being loaded by that site?
"""

import logging
from collections import deque
from collections.abc import Collection
from typing import Optional

from smartblock.models import CategoryLabel, DomainAccessEvent

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 10.0
DEFAULT_MAX_EVENTS = 10_000

# Labels whose accesses never establish context
ILLEGITIMATE_LABELS: frozenset[CategoryLabel] = frozenset({
    CategoryLabel.RESTRICTED_OTHER,
    CategoryLabel.SOCIAL_PRIMARY,
})


class AccessHistory:
    """Bounded, insertion-ordered record of recent accesses.

    Not synchronized: the owning classifier serializes all access.

    Timestamps are expected to come from a monotonic clock. Eviction only
    removes events strictly older than the window, so a clock that jumps
    backwards never evicts anything.
    """

    def __init__(self, max_events: int = DEFAULT_MAX_EVENTS) -> None:
        """Initialize an empty history.

        Args:
            max_events: Hard cap on retained events; the oldest are dropped
                once reached, even if still inside the window
        """
        if max_events < 1:
            raise ValueError(f"max_events must be positive, got {max_events}")
        self.max_events = max_events
        self._events: deque[DomainAccessEvent] = deque(maxlen=max_events)

    def __len__(self) -> int:
        return len(self._events)

    def record(
        self,
        domain: str,
        timestamp: float,
        label: CategoryLabel = CategoryLabel.UNCLASSIFIED,
    ) -> DomainAccessEvent:
        """Append an access. Duplicates are kept."""
        if len(self._events) == self.max_events:
            logger.debug(f"Access history full ({self.max_events}), dropping oldest event")
        event = DomainAccessEvent(domain=domain, timestamp=timestamp, label=label)
        self._events.append(event)
        return event

    def has_recent_legitimate_access(
        self,
        now: float,
        window: float = DEFAULT_WINDOW_SECONDS,
        excluded: Optional[Collection[CategoryLabel]] = None,
    ) -> bool:
        """Check for a legitimate access in the trailing window.

        Args:
            now: Current clock reading
            window: Window length in seconds
            excluded: Labels that do not count as legitimate
                (default: RestrictedOther and SocialPrimary)

        Returns:
            True if any event not in ``excluded`` is at most ``window`` old
        """
        if excluded is None:
            excluded = ILLEGITIMATE_LABELS

        for event in reversed(self._events):
            if now - event.timestamp <= window and event.label not in excluded:
                logger.debug(
                    f"Found recent legitimate domain: {event.domain} "
                    f"({now - event.timestamp:.3f}s ago)"
                )
                return True
        return False

    def evict_expired(self, now: float, window: float = DEFAULT_WINDOW_SECONDS) -> int:
        """Drop events older than the window.

        Returns:
            Number of events removed
        """
        before = len(self._events)
        if not any(now - e.timestamp > window for e in self._events):
            return 0

        self._events = deque(
            (e for e in self._events if now - e.timestamp <= window),
            maxlen=self.max_events,
        )
        return before - len(self._events)

    def recent(self, now: float, window: float = DEFAULT_WINDOW_SECONDS) -> list[DomainAccessEvent]:
        """Return events inside the window, most recent first."""
        return [e for e in reversed(self._events) if now - e.timestamp <= window]

    def clear(self) -> None:
        self._events.clear()
