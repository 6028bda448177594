"""Plan-tier access policy.

Pure functions mapping a stored plan value to a tier and an access decision.
The stored plan is free text in some admin flows, so normalization never
raises: anything it cannot read degrades to the free tier. Missing or
malformed data must never grant paid access.

Note:
    This is the same policy the HTTP layer enforces server-side via
    ``require_tier``. The client-side gate built on it is a UX convenience,
    not the entitlement boundary.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from src.portal.shared.access.tiers import ALL_TIERS, NO_PLAN, PlanTier

# Leading integer, as a lenient parser of "2", " 1 ", "2 (manual)"
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class GateDecision:
    """Derived access verdict. Recomputed on every render, never stored."""

    has_access: bool
    current_tier: int
    required_tier: int


def normalize_tier(plan_value: Any) -> int:
    """Normalize a stored plan value into a tier.

    Args:
        plan_value: "none", a numeric string, a number, or None

    Returns:
        Non-negative integer tier; 0 for anything unrecognized

    Examples:
        >>> normalize_tier("none")
        0
        >>> normalize_tier("2")
        2
        >>> normalize_tier(-3)
        0
        >>> normalize_tier("abc")
        0
    """
    if plan_value is None or isinstance(plan_value, bool):
        return PlanTier.FREE.value

    if isinstance(plan_value, int):
        return max(0, int(plan_value))

    if isinstance(plan_value, float):
        if not math.isfinite(plan_value):
            return PlanTier.FREE.value
        return max(0, int(plan_value))

    if isinstance(plan_value, str):
        if plan_value.strip().lower() == NO_PLAN:
            return PlanTier.FREE.value
        match = _LEADING_INT.match(plan_value)
        if not match:
            return PlanTier.FREE.value
        try:
            return max(0, int(match.group(1)))
        except ValueError:
            # Exceeds the interpreter's int digit limit
            return PlanTier.FREE.value

    # Decimal from DynamoDB, numpy scalars, anything else numeric-like
    try:
        return max(0, int(plan_value))
    except (TypeError, ValueError, OverflowError):
        return PlanTier.FREE.value


def evaluate_access(current_tier_raw: Any, required_tier: int) -> GateDecision:
    """Decide whether a stored plan value grants a required tier.

    Examples:
        >>> evaluate_access("1", 1).has_access
        True
        >>> evaluate_access("none", 1).has_access
        False
    """
    current_tier = normalize_tier(current_tier_raw)
    return GateDecision(
        has_access=current_tier >= required_tier,
        current_tier=current_tier,
        required_tier=required_tier,
    )


def available_upgrade_tiers(
    current_tier: int, all_tiers: Iterable[int] = ALL_TIERS
) -> list[int]:
    """Return every tier strictly above current_tier, ascending.

    Examples:
        >>> available_upgrade_tiers(0, [0, 1, 2])
        [1, 2]
        >>> available_upgrade_tiers(2, [0, 1, 2])
        []
    """
    return sorted(tier for tier in set(all_tiers) if tier > current_tier)
