"""Plan-tier access control decorators for FastAPI endpoints.

Server-side enforcement of the same policy the SubscriptionGate shows in the
dashboard. The gate is a UX convenience; these decorators are the
entitlement boundary.

Usage:
    from src.portal.shared.middleware import require_tier

    @router.get("/features/workshops")
    @require_tier(PlanTier.STANDARD)
    async def workshops(request: Request):
        ...

Security:
    - The tier is read from the stored account on every request, never from
      the token or an in-process cache
    - Tier values are validated at decoration time so typos fail startup
    - 403 bodies list upgrade offers but nothing about other accounts
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from typing import Any, TypeVar

from fastapi import HTTPException, Request

from src.portal.shared.access.policy import available_upgrade_tiers, evaluate_access
from src.portal.shared.access.tiers import ALL_TIERS, VALID_TIERS, plan_name
from src.portal.shared.errors.access_errors import InvalidTierError
from src.portal.shared.errors.store_errors import StoreError
from src.portal.shared.logging_utils import identity_prefix
from src.portal.shared.models.account import Account

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _find_request(args: tuple[Any, ...], kwargs: dict[str, Any]) -> Request:
    if "request" in kwargs:
        return kwargs["request"]
    for arg in args:
        if isinstance(arg, Request):
            return arg
    logger.error("Access decorator: no Request object found in handler args")
    raise HTTPException(status_code=500, detail="Internal server error")


def _load_account(request: Request) -> Account | None:
    """Resolve the signed-in account for a request.

    Returns None for a signed-in identity with no record yet (treated as the
    free tier). Raises 401 when signed out and 503 when the store fails.
    """
    # Imported lazily so tests can reset singletons between runs
    from src.portal.shared.dependencies import get_account_service

    service = get_account_service()
    identity = service.identity_for(dict(request.headers))
    if identity is None:
        raise HTTPException(status_code=401, detail="Authentication required")

    request.state.identity = identity.subject
    try:
        return service.account_for(identity.subject)
    except StoreError as e:
        raise HTTPException(
            status_code=503, detail="Account service temporarily unavailable"
        ) from e


def require_tier(required_tier: int) -> Callable[[F], F]:
    """Decorator factory for plan-tier access control.

    Args:
        required_tier: Minimum tier that unlocks the endpoint

    Raises:
        InvalidTierError: At decoration time if the tier is not in the catalog
    """
    if isinstance(required_tier, bool) or required_tier not in VALID_TIERS:
        raise InvalidTierError(required_tier, ALL_TIERS)
    required_tier = int(required_tier)

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            request = _find_request(args, kwargs)
            account = _load_account(request)

            plan_value = account.plan_value if account else None
            decision = evaluate_access(plan_value, required_tier)
            if not decision.has_access:
                logger.debug(
                    f"require_tier({required_tier}): account on tier "
                    f"{decision.current_tier}, returning 403"
                )
                raise HTTPException(
                    status_code=403,
                    detail={
                        "message": "Upgrade required",
                        "required_tier": required_tier,
                        "required_tier_name": plan_name(required_tier),
                        "current_tier": decision.current_tier,
                        "upgrade_tiers": available_upgrade_tiers(
                            decision.current_tier
                        ),
                    },
                )

            request.state.account = account
            return await func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


def require_admin(func: F) -> F:
    """Allow only accounts whose stored admin flag is literally true."""

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        request = _find_request(args, kwargs)
        account = _load_account(request)

        if account is None or not account.is_admin:
            # SECURITY: generic message, same as any other denied request
            logger.warning(
                "Non-admin account denied admin endpoint",
                extra={"identity_prefix": identity_prefix(request.state.identity)},
            )
            raise HTTPException(status_code=403, detail="Access denied")

        request.state.account = account
        return await func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]
