"""Unit tests for plan-tier normalization and access decisions."""

from decimal import Decimal

import pytest

from src.portal.shared.access import (
    ALL_TIERS,
    PLAN_CATALOG,
    PlanTier,
    available_upgrade_tiers,
    evaluate_access,
    get_plan,
    normalize_tier,
    plan_name,
)


class TestNormalizeTier:
    """Stored plan values degrade to the free tier, never to paid access."""

    @pytest.mark.parametrize(
        "plan_value,expected",
        [
            ("none", 0),
            ("None", 0),
            (" NONE ", 0),
            ("0", 0),
            ("1", 1),
            ("2", 2),
            (" 2 ", 2),
            ("2 (manual)", 2),
            ("abc", 0),
            ("", 0),
            ("-1", 0),
            ("+1", 1),
            (None, 0),
            (True, 0),
            (False, 0),
            (1, 1),
            (-5, 0),
            (2.9, 2),
            (float("nan"), 0),
            (float("inf"), 0),
            (Decimal("2"), 2),
            ([], 0),
            ({}, 0),
        ],
    )
    def test_normalizes(self, plan_value, expected):
        assert normalize_tier(plan_value) == expected

    def test_huge_digit_string_is_free(self):
        assert normalize_tier("9" * 10_000) == 0

    def test_tier_above_catalog_is_kept(self):
        """Out-of-catalog tiers still compare correctly."""
        assert normalize_tier("7") == 7


class TestEvaluateAccess:
    def test_free_account_blocked_from_standard(self):
        decision = evaluate_access("none", PlanTier.STANDARD)
        assert decision.has_access is False
        assert decision.current_tier == 0
        assert decision.required_tier == 1

    def test_equal_tier_grants(self):
        assert evaluate_access("1", 1).has_access is True

    def test_higher_tier_grants(self):
        assert evaluate_access("2", 1).has_access is True

    def test_malformed_value_never_grants_paid(self):
        assert evaluate_access("premium", 1).has_access is False

    def test_free_features_always_granted(self):
        assert evaluate_access(None, 0).has_access is True


class TestAvailableUpgradeTiers:
    def test_from_free(self):
        assert available_upgrade_tiers(0) == [1, 2]

    def test_from_standard(self):
        assert available_upgrade_tiers(1) == [2]

    def test_from_top_tier(self):
        assert available_upgrade_tiers(2) == []

    def test_unordered_input_is_sorted(self):
        assert available_upgrade_tiers(0, [2, 0, 1, 1]) == [1, 2]

    def test_default_tiers_are_catalog(self):
        assert tuple(ALL_TIERS) == (0, 1, 2)


class TestPlanCatalog:
    def test_names_and_prices(self):
        assert [(p.name, p.price) for p in PLAN_CATALOG.values()] == [
            ("Free", "R0"),
            ("Standard", "R99"),
            ("Premium", "R149"),
        ]

    def test_features_are_cumulative(self):
        free, standard, premium = (PLAN_CATALOG[t].features for t in ALL_TIERS)
        assert set(free) <= set(standard) <= set(premium)

    def test_only_premium_highlighted(self):
        assert [p.highlighted for p in PLAN_CATALOG.values()] == [False, False, True]

    def test_get_plan_clamps(self):
        assert get_plan(9).name == "Premium"
        assert get_plan(-1).name == "Free"

    def test_plan_name(self):
        assert plan_name(1) == "Standard"
