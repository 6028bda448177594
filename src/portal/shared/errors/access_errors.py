"""Plan-tier access and upgrade error types.

SubscriptionGate never lets these escape to the page: they are converted to
an inline, user-visible message. The HTTP layer maps them to 400/401.
"""

from __future__ import annotations


class UpgradeError(Exception):
    """Base class for failed upgrade attempts."""

    user_message = "We couldn't complete your upgrade. Please try again."


class UnauthorizedUpgradeError(UpgradeError):
    """Upgrade attempted without a signed-in identity.

    Fails closed: no write is attempted and no tier change is implied.
    """

    user_message = "Please sign in to upgrade your plan."

    def __init__(self) -> None:
        super().__init__("Upgrade requires a signed-in account")


class InvalidUpgradeTargetError(UpgradeError):
    """Target tier is not above the account's current tier."""

    user_message = "That plan is not available as an upgrade."

    def __init__(self, current_tier: int, target_tier: int) -> None:
        self.current_tier = current_tier
        self.target_tier = target_tier
        super().__init__(
            f"Tier {target_tier} is not an upgrade from tier {current_tier}"
        )


class InvalidTierError(ValueError):
    """Raised at decoration time for tier values outside the plan catalog.

    This is a programming mistake and should stop the application from
    starting.
    """

    def __init__(self, tier: object, valid_tiers: tuple[int, ...]) -> None:
        self.tier = tier
        self.valid_tiers = valid_tiers
        super().__init__(f"Invalid tier {tier!r}. Valid tiers: {list(valid_tiers)}")
