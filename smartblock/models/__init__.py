"""Data models for smartblock decisions."""

from smartblock.models.events import (
    SEVERITY_ORDER,
    Alert,
    CategoryLabel,
    Decision,
    DomainAccessEvent,
    Outcome,
    Reason,
    Severity,
)

__all__ = [
    "SEVERITY_ORDER",
    "Alert",
    "CategoryLabel",
    "Decision",
    "DomainAccessEvent",
    "Outcome",
    "Reason",
    "Severity",
]
