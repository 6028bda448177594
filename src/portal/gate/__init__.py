"""Client-side subscription gate for premium dashboard features."""

from src.portal.gate.component import SubscriptionGate
from src.portal.gate.countdown import Countdown, Scheduler
from src.portal.gate.session import DashboardSession
from src.portal.gate.state import GateState, GateView, PlanOffer

__all__ = [
    "Countdown",
    "DashboardSession",
    "GateState",
    "GateView",
    "PlanOffer",
    "Scheduler",
    "SubscriptionGate",
]
