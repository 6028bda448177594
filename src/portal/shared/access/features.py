"""Dashboard features and the tier each one requires."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from src.portal.shared.access.policy import evaluate_access
from src.portal.shared.access.tiers import PlanTier, plan_name


@dataclass(frozen=True)
class FeatureRequirement:
    """A feature and the minimum tier that unlocks it."""

    feature_name: str
    required_tier: int


@dataclass(frozen=True)
class DashboardFeature:
    key: str
    title: str
    href: str
    requirement: FeatureRequirement


def _feature(key: str, title: str, href: str, tier: PlanTier) -> DashboardFeature:
    return DashboardFeature(
        key=key,
        title=title,
        href=href,
        requirement=FeatureRequirement(feature_name=title, required_tier=tier.value),
    )


# Menu order
DASHBOARD_FEATURES: tuple[DashboardFeature, ...] = (
    _feature("dashboard", "Dashboard", "/dashboard/", PlanTier.FREE),
    _feature("funding", "Funding Application Portal", "/dashboard/funding", PlanTier.FREE),
    _feature("workshops", "Business Workshops", "/dashboard/workshops", PlanTier.STANDARD),
    _feature("visibility", "Market Visibility Tools", "/dashboard/visibility", PlanTier.STANDARD),
    _feature("documents", "Mergers and Acquisitions", "/dashboard/documents", PlanTier.PREMIUM),
    _feature("broadband", "Broadband Access Initiatives", "/dashboard/broadband", PlanTier.PREMIUM),
    _feature("profile", "Profile", "/dashboard/profile", PlanTier.FREE),
)

FEATURES_BY_KEY: dict[str, DashboardFeature] = {f.key: f for f in DASHBOARD_FEATURES}


def get_feature(key: str) -> DashboardFeature:
    """Look up a feature by key.

    Raises:
        KeyError: If the feature key is unknown
    """
    return FEATURES_BY_KEY[key]


def navigation_items(plan_value: Any) -> list[dict[str, Any]]:
    """Build the dashboard menu with lock flags for a stored plan value."""
    items = []
    for feature in DASHBOARD_FEATURES:
        decision = evaluate_access(plan_value, feature.requirement.required_tier)
        items.append(
            {
                "key": feature.key,
                "title": feature.title,
                "href": feature.href,
                "required_tier": feature.requirement.required_tier,
                "required_tier_name": plan_name(feature.requirement.required_tier),
                "locked": not decision.has_access,
            }
        )
    return items
