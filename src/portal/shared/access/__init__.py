"""Plan-tier access policy."""

from src.portal.shared.access.features import (
    DASHBOARD_FEATURES,
    DashboardFeature,
    FeatureRequirement,
    get_feature,
    navigation_items,
)
from src.portal.shared.access.policy import (
    GateDecision,
    available_upgrade_tiers,
    evaluate_access,
    normalize_tier,
)
from src.portal.shared.access.tiers import (
    ALL_TIERS,
    NO_PLAN,
    PLAN_CATALOG,
    VALID_TIERS,
    Plan,
    PlanTier,
    get_plan,
    plan_name,
)

__all__ = [
    "ALL_TIERS",
    "DASHBOARD_FEATURES",
    "DashboardFeature",
    "FeatureRequirement",
    "GateDecision",
    "NO_PLAN",
    "PLAN_CATALOG",
    "Plan",
    "PlanTier",
    "VALID_TIERS",
    "available_upgrade_tiers",
    "evaluate_access",
    "get_feature",
    "get_plan",
    "navigation_items",
    "normalize_tier",
    "plan_name",
]
