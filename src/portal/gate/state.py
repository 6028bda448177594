"""Gate states and the view model a page renders."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from src.portal.shared.access.tiers import Plan


class GateState(str, Enum):
    """Mutually exclusive gate views.

    GRANTED is never stored: it is the precedence check applied on every
    render whenever the caller's latest data says access is sufficient.
    """

    BLOCKED = "blocked"
    UPGRADING = "upgrading"
    CONFIRMED = "confirmed"
    GRANTED = "granted"


class PlanOffer(BaseModel):
    """One upgrade option shown in the blocked view."""

    tier: int
    name: str
    price: str
    features: list[str]
    highlighted: bool = False

    @classmethod
    def from_plan(cls, plan: Plan) -> PlanOffer:
        return cls(
            tier=plan.tier,
            name=plan.name,
            price=plan.price,
            features=list(plan.features),
            highlighted=plan.highlighted,
        )


class GateView(BaseModel):
    """Everything needed to draw the gate for one render."""

    state: GateState
    feature_name: str
    required_tier: int
    required_tier_name: str
    current_tier: int
    current_tier_name: str
    is_signed_in: bool = True

    # BLOCKED / UPGRADING
    offers: list[PlanOffer] = Field(default_factory=list)
    is_upgrading: bool = False
    error: str | None = None

    # CONFIRMED
    confirmed_tier: int | None = None
    confirmed_tier_name: str | None = None
    confirmed_features: list[str] = Field(default_factory=list)
    countdown_remaining: int | None = None

    # GRANTED
    content: Any = None

    @property
    def shows_content(self) -> bool:
        return self.state is GateState.GRANTED
