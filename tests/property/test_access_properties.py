"""Property tests for the access policy."""

from hypothesis import given, settings
from hypothesis import strategies as st

from src.portal.shared.access import (
    available_upgrade_tiers,
    evaluate_access,
    normalize_tier,
)

plan_values = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(),
    st.floats(allow_nan=True, allow_infinity=True),
    st.text(max_size=40),
    st.just("none"),
)


class TestNormalizationProperties:
    @settings(max_examples=300)
    @given(value=plan_values)
    def test_never_raises_and_never_negative(self, value):
        tier = normalize_tier(value)
        assert isinstance(tier, int)
        assert tier >= 0

    @given(tier=st.integers(min_value=0, max_value=10**6))
    def test_numeric_strings_round_trip(self, tier):
        assert normalize_tier(str(tier)) == tier

    @given(text=st.text(alphabet=st.characters(categories=["L"]), min_size=1))
    def test_non_numeric_text_is_free(self, text):
        assert normalize_tier(text) == 0


class TestAccessProperties:
    @given(value=plan_values, required=st.integers(min_value=0, max_value=5))
    def test_access_matches_tier_comparison(self, value, required):
        decision = evaluate_access(value, required)
        assert decision.has_access == (normalize_tier(value) >= required)

    @given(
        value=plan_values,
        low=st.integers(min_value=0, max_value=5),
        high=st.integers(min_value=0, max_value=5),
    )
    def test_access_is_monotonic_in_required_tier(self, value, low, high):
        if low <= high and evaluate_access(value, high).has_access:
            assert evaluate_access(value, low).has_access


class TestUpgradeTierProperties:
    @given(
        current=st.integers(min_value=-3, max_value=6),
        tiers=st.lists(st.integers(min_value=0, max_value=6)),
    )
    def test_strictly_above_and_sorted(self, current, tiers):
        result = available_upgrade_tiers(current, tiers)
        assert result == sorted(set(result))
        assert all(t > current for t in result)
        assert set(result) == {t for t in tiers if t > current}
