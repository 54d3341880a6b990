from .aggregator import (
    ComplianceAggregator,
    CriticalPolicy,
    any_unmatched_is_critical,
    critical_unless_notified,
    never_critical,
)

__all__ = [
    "ComplianceAggregator",
    "CriticalPolicy",
    "any_unmatched_is_critical",
    "critical_unless_notified",
    "never_critical",
]
