"""Context-aware access classifier.

Decides ALLOW or BLOCK for each domain request. Social-media dependencies
(embedded widgets, APIs, CDNs) are allowed when the user recently reached a
legitimate site that is probably loading them, while direct navigation to
social-media sites is blocked.

Rules, first match wins:
1. Whitelisted                                  -> ALLOW (whitelisted)
2. Social dependency + recent legitimate access -> ALLOW (dependency-in-context)
3. Social primary (if social blocking enabled)  -> BLOCK (social-primary-blocked)
4. Restricted other (adult content, etc.)       -> BLOCK (restricted-other-blocked)
5. Everything else                              -> ALLOW (default-allow)

Every request, allowed or blocked, is then recorded into the access history.
"""

import logging
import threading
import time
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Optional

from smartblock.models import CategoryLabel, Decision, DomainAccessEvent, Outcome, Reason
from smartblock.policies.category_oracle import CategoryOracle
from smartblock.policies.history import (
    DEFAULT_MAX_EVENTS,
    DEFAULT_WINDOW_SECONDS,
    ILLEGITIMATE_LABELS,
    AccessHistory,
)
from smartblock.policies.normalize import normalize_domain

logger = logging.getLogger(__name__)

STRICT_ILLEGITIMATE_LABELS = ILLEGITIMATE_LABELS | {CategoryLabel.SOCIAL_DEPENDENCY}


@dataclass
class ClassifierConfig:
    """Configuration for the context-aware classifier."""

    # Trailing window in which a legitimate access justifies dependencies
    window_seconds: float = DEFAULT_WINDOW_SECONDS

    # Hard cap on remembered accesses
    max_events: int = DEFAULT_MAX_EVENTS

    # If False, primary social domains fall through to default-allow
    block_social_media: bool = True

    # If True, dependencies seen without context are blocked instead of
    # falling through to default-allow, and dependency accesses stop
    # counting as context themselves
    block_uncontextualized_dependencies: bool = False


class ContextAwareClassifier:
    """Classifies domain requests using a short-lived access history.

    Thread-safe: one lock covers eviction, the context check, the decision
    and the history update, so near-simultaneous requests see a consistent
    history. The oracle is queried before the lock is taken.

    Usage:
        with ContextAwareClassifier(StaticCategoryOracle()) as classifier:
            decision = classifier.classify("graph.facebook.com")
    """

    def __init__(
        self,
        oracle: CategoryOracle,
        config: Optional[ClassifierConfig] = None,
        history: Optional[AccessHistory] = None,
        clock: Callable[[], float] = time.monotonic,
        on_block: Optional[Callable[[Decision], None]] = None,
    ) -> None:
        """Initialize the classifier.

        Args:
            oracle: Category lookup for domains
            config: Classifier settings (defaults if None)
            history: Access history to own (a fresh one if None)
            clock: Monotonic clock used when callers pass no timestamp
            on_block: Called with every blocking decision, outside the lock
        """
        self.oracle = oracle
        self.config = config or ClassifierConfig()
        if self.config.window_seconds < 0:
            raise ValueError(f"window_seconds must be >= 0, got {self.config.window_seconds}")

        self._history = history if history is not None else AccessHistory(self.config.max_events)
        self._clock = clock
        self._on_block = on_block
        self._lock = threading.Lock()
        self._counts: Counter[str] = Counter()

        logger.info(
            f"Classifier ready - window: {self.config.window_seconds}s, "
            f"social blocking: {self.config.block_social_media}, "
            f"strict dependencies: {self.config.block_uncontextualized_dependencies}"
        )

    def __enter__(self) -> "ContextAwareClassifier":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Drop all remembered context."""
        with self._lock:
            self._history.clear()
        logger.debug("Classifier closed, context cleared")

    def classify(
        self,
        domain: Any,
        timestamp: Optional[float] = None,
        context_hint: Optional[str] = None,
    ) -> Decision:
        """Decide whether a domain request is allowed.

        Never raises: malformed domains and internal failures are blocked
        (fail closed), oracle failures are treated as unclassified.

        Requests are expected in timestamp order. Each call evicts history
        relative to its own timestamp, so once a later request has evicted
        an access, an earlier-stamped request that arrives afterwards no
        longer sees it as context.

        Args:
            domain: Requested domain, URL, or host header value
            timestamp: Monotonic request time; the classifier clock if None
            context_hint: Optional request type or client from the
                interception layer; carried onto the Decision and logged,
                but never consulted by the rules

        Returns:
            Decision with outcome and reason
        """
        normalized = normalize_domain(domain)
        try:
            if normalized is None:
                logger.debug(f"Malformed domain {domain!r}, failing closed")
                label = CategoryLabel.RESTRICTED_OTHER
            else:
                label = self._lookup(normalized)

            with self._lock:
                now = self._clock() if timestamp is None else timestamp
                self._history.evict_expired(now, self.config.window_seconds)
                outcome, reason = self._apply_rules(label, now)
                self._history.record(normalized or "", now, label)
                self._counts["total"] += 1
                self._counts[outcome.value] += 1
                self._counts[reason.value] += 1
        except Exception as e:
            logger.error(f"Classification failed for {domain!r}, failing closed: {e}")
            return Decision(
                outcome=Outcome.BLOCK,
                reason=Reason.RESTRICTED_OTHER_BLOCKED,
                domain=normalized or "",
                label=CategoryLabel.RESTRICTED_OTHER,
                timestamp=timestamp if timestamp is not None else 0.0,
                context_hint=context_hint,
            )

        decision = Decision(
            outcome=outcome,
            reason=reason,
            domain=normalized or "",
            label=label,
            timestamp=now,
            context_hint=context_hint,
        )
        if context_hint:
            logger.debug(f"Decision: {decision} [hint: {context_hint}]")
        else:
            logger.debug(f"Decision: {decision}")

        if decision.blocked and self._on_block:
            try:
                self._on_block(decision)
            except Exception as e:
                logger.warning(f"Block callback failed for {decision.domain}: {e}")

        return decision

    def explain(self, domain: Any, timestamp: Optional[float] = None) -> dict[str, Any]:
        """Report how a domain would be classified, without recording it.

        Args:
            domain: Requested domain
            timestamp: Monotonic time to evaluate at; the classifier clock if None

        Returns:
            Dictionary with the normalized domain, label, context flag,
            toggles and the would-be outcome and reason
        """
        normalized = normalize_domain(domain)
        if normalized is None:
            label = CategoryLabel.RESTRICTED_OTHER
        else:
            label = self._lookup(normalized)

        with self._lock:
            now = self._clock() if timestamp is None else timestamp
            has_context = self._has_context(now)
            outcome, reason = self._apply_rules(label, now)

        result = {
            "domain": domain,
            "normalized": normalized,
            "label": label.value,
            "is_primary": label is CategoryLabel.SOCIAL_PRIMARY,
            "is_dependency": label is CategoryLabel.SOCIAL_DEPENDENCY,
            "has_context": has_context,
            "social_blocking": self.config.block_social_media,
            "strict_dependencies": self.config.block_uncontextualized_dependencies,
            "outcome": outcome.value,
            "reason": reason.value,
        }
        logger.debug(f"Explain {domain!r}: {result}")
        return result

    def add_to_context(self, domain: str, timestamp: Optional[float] = None) -> Optional[DomainAccessEvent]:
        """Record a domain access without making a decision.

        Returns:
            The recorded event, or None if the domain is malformed
        """
        normalized = normalize_domain(domain)
        if normalized is None:
            logger.debug(f"Not adding malformed domain {domain!r} to context")
            return None

        label = self._lookup(normalized)
        with self._lock:
            now = self._clock() if timestamp is None else timestamp
            self._history.evict_expired(now, self.config.window_seconds)
            event = self._history.record(normalized, now, label)
        logger.debug(f"Added {normalized} ({label.value}) to recent context")
        return event

    def clear_context(self) -> None:
        with self._lock:
            self._history.clear()
        logger.debug("Cleared domain access context")

    def context(self, now: Optional[float] = None) -> list[DomainAccessEvent]:
        """Return the accesses currently inside the window, most recent first."""
        with self._lock:
            if now is None:
                now = self._clock()
            self._history.evict_expired(now, self.config.window_seconds)
            events = self._history.recent(now, self.config.window_seconds)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Current domain context ({len(events)} recent):")
            for event in events:
                logger.debug(
                    f"  {event.domain} ({event.label.value}) - {now - event.timestamp:.3f}s ago"
                )
        return events

    @property
    def stats(self) -> dict[str, int]:
        """Decision counters: total, allow, block and one entry per reason."""
        with self._lock:
            return dict(self._counts)

    def _lookup(self, domain: str) -> CategoryLabel:
        """Query the oracle, mapping any failure to UNCLASSIFIED."""
        try:
            label = self.oracle.classify(domain)
        except Exception as e:
            logger.warning(f"Category lookup failed for {domain}: {e}")
            return CategoryLabel.UNCLASSIFIED

        if not isinstance(label, CategoryLabel):
            logger.warning(f"Category oracle returned {label!r} for {domain}, treating as unclassified")
            return CategoryLabel.UNCLASSIFIED
        return label

    def _has_context(self, now: float) -> bool:
        excluded = (
            STRICT_ILLEGITIMATE_LABELS
            if self.config.block_uncontextualized_dependencies
            else ILLEGITIMATE_LABELS
        )
        return self._history.has_recent_legitimate_access(
            now, self.config.window_seconds, excluded=excluded
        )

    def _apply_rules(self, label: CategoryLabel, now: float) -> tuple[Outcome, Reason]:
        """Evaluate the ordered rules. Caller must hold the lock."""
        if label is CategoryLabel.WHITELISTED:
            return Outcome.ALLOW, Reason.WHITELISTED

        if label is CategoryLabel.SOCIAL_DEPENDENCY and self._has_context(now):
            return Outcome.ALLOW, Reason.DEPENDENCY_IN_CONTEXT

        if label is CategoryLabel.SOCIAL_PRIMARY and self.config.block_social_media:
            return Outcome.BLOCK, Reason.SOCIAL_PRIMARY_BLOCKED

        if label is CategoryLabel.RESTRICTED_OTHER:
            return Outcome.BLOCK, Reason.RESTRICTED_OTHER_BLOCKED

        if label is CategoryLabel.SOCIAL_DEPENDENCY and self.config.block_uncontextualized_dependencies:
            return Outcome.BLOCK, Reason.DEPENDENCY_WITHOUT_CONTEXT

        return Outcome.ALLOW, Reason.DEFAULT_ALLOW
