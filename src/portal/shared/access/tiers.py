"""Canonical plan tiers and the plan catalog.

Tiers are a small closed ordered set; a higher tier includes every feature
of the tiers below it. Tier 0 is the default for every new account.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class PlanTier(IntEnum):
    """Subscription plan tiers, ordered by access level."""

    FREE = 0
    STANDARD = 1
    PREMIUM = 2


# Ascending, used to enumerate upgrade offers
ALL_TIERS: tuple[int, ...] = tuple(tier.value for tier in PlanTier)

# Immutable set for O(1) validation at decoration time
VALID_TIERS: frozenset[int] = frozenset(ALL_TIERS)

# Stored value for accounts that have never chosen a plan
NO_PLAN = "none"


@dataclass(frozen=True)
class Plan:
    """Catalog entry for one tier."""

    tier: int
    name: str
    price: str
    features: tuple[str, ...]
    highlighted: bool = False


PLAN_CATALOG: dict[int, Plan] = {
    PlanTier.FREE: Plan(
        tier=PlanTier.FREE,
        name="Free",
        price="R0",
        features=("Funding Application Portal",),
    ),
    PlanTier.STANDARD: Plan(
        tier=PlanTier.STANDARD,
        name="Standard",
        price="R99",
        features=(
            "Funding Application Portal",
            "Business Workshops",
            "Market Visibility Tools",
        ),
    ),
    PlanTier.PREMIUM: Plan(
        tier=PlanTier.PREMIUM,
        name="Premium",
        price="R149",
        features=(
            "Funding Application Portal",
            "Business Workshops",
            "Market Visibility Tools",
            "Secure Document Management",
            "Broadband Access Initiatives",
        ),
        highlighted=True,
    ),
}


def get_plan(tier: int) -> Plan:
    """Return the catalog entry for a tier, clamping to the catalog range."""
    if tier in PLAN_CATALOG:
        return PLAN_CATALOG[tier]
    if tier > max(ALL_TIERS):
        return PLAN_CATALOG[max(ALL_TIERS)]
    return PLAN_CATALOG[PlanTier.FREE]


def plan_name(tier: int) -> str:
    return get_plan(tier).name
