"""
socialgen/models/quota.py

Quota gate decisions.

Denials are values: callers branch on QuotaDecision.allowed instead of
catching exceptions, which keeps "upgrade your plan" apart from
"something went wrong".
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class DenialReason(str, Enum):
    SUBSCRIPTION_INACTIVE = "subscription_inactive"
    LIMIT_REACHED = "limit_reached"


@dataclass(frozen=True)
class QuotaDecision:
    allowed: bool
    resource_type: str
    tier: str
    limit: int
    current: int
    reason: Optional[DenialReason] = None

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.current)


@dataclass(frozen=True)
class GatedResult:
    """Result of a quota-gated action: the decision and, if allowed, the action's return value."""
    decision: QuotaDecision
    result: Any = None

    @property
    def allowed(self) -> bool:
        return self.decision.allowed
