"""Core data types for domain access classification."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class CategoryLabel(Enum):
    """Category assigned to a domain by a category oracle."""

    WHITELISTED = "whitelisted"
    SOCIAL_PRIMARY = "social_primary"
    SOCIAL_DEPENDENCY = "social_dependency"
    RESTRICTED_OTHER = "restricted_other"
    UNCLASSIFIED = "unclassified"


class Outcome(Enum):
    ALLOW = "allow"
    BLOCK = "block"


class Reason(Enum):
    """Which rule produced a decision."""

    WHITELISTED = "whitelisted"
    DEPENDENCY_IN_CONTEXT = "dependency-in-context"
    SOCIAL_PRIMARY_BLOCKED = "social-primary-blocked"
    RESTRICTED_OTHER_BLOCKED = "restricted-other-blocked"
    DEFAULT_ALLOW = "default-allow"
    # Only produced when uncontextualized dependencies are blocked
    DEPENDENCY_WITHOUT_CONTEXT = "dependency-without-context"


class Severity(Enum):
    INFO = "info"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


SEVERITY_ORDER = [
    Severity.INFO,
    Severity.LOW,
    Severity.MEDIUM,
    Severity.HIGH,
    Severity.CRITICAL,
]


@dataclass(frozen=True)
class DomainAccessEvent:
    """A single recorded domain access.

    Attributes:
        domain: Normalized lowercase hostname
        timestamp: Monotonic clock reading in seconds
        label: Category assigned when the access was recorded
    """

    domain: str
    timestamp: float
    label: CategoryLabel = CategoryLabel.UNCLASSIFIED


@dataclass(frozen=True)
class Decision:
    """Result of classifying one domain request."""

    outcome: Outcome
    reason: Reason
    domain: str
    label: CategoryLabel
    timestamp: float
    # Opaque hint from the interception layer (request type, client); not used by the rules
    context_hint: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.outcome is Outcome.ALLOW

    @property
    def blocked(self) -> bool:
        return self.outcome is Outcome.BLOCK

    def __str__(self) -> str:
        return f"{self.domain or '<invalid>'} -> {self.outcome.value.upper()} ({self.reason.value})"


@dataclass
class Alert:
    """Notification-ready record of a blocked request."""

    id: str
    timestamp: datetime
    severity: Severity
    title: str
    description: str
    domain: str
    reason: Reason
    label: CategoryLabel
    tags: list[str] = field(default_factory=list)
    client: Optional[str] = None

    @classmethod
    def from_decision(
        cls,
        alert_id: str,
        decision: Decision,
        severity: Severity = Severity.MEDIUM,
        client: Optional[str] = None,
    ) -> "Alert":
        domain = decision.domain or "<invalid>"
        return cls(
            id=alert_id,
            timestamp=datetime.now(timezone.utc),
            severity=severity,
            title=f"Blocked {domain}",
            description=(
                f"Request for {domain} (category: {decision.label.value}) "
                f"was blocked: {decision.reason.value}"
            ),
            domain=domain,
            reason=decision.reason,
            label=decision.label,
            tags=["smartblock", decision.label.value, decision.reason.value],
            client=client,
        )
