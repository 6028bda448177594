"""Dashboard API v1 routers.

Routes are grouped by concern and mounted on the app by include_routers().
Identity always comes from the bearer token; the tier always comes from the
stored account.

For On-Call Engineers:
    - 503 with code DATABASE_ERROR means DynamoDB reads/writes are failing;
      check the Lambda's IAM role and table throttling.
    - Every error body carries request_id, which is also in the log line.
"""

import logging
import uuid
from typing import Any

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src.portal.gate.state import PlanOffer
from src.portal.shared.access.features import get_feature, navigation_items
from src.portal.shared.access.policy import available_upgrade_tiers, evaluate_access
from src.portal.shared.access.tiers import PLAN_CATALOG, PlanTier, get_plan, plan_name
from src.portal.shared.auth.identity import Identity
from src.portal.shared.dependencies import get_account_service, get_no_cache_headers
from src.portal.shared.errors.access_errors import UpgradeError
from src.portal.shared.errors.responses import ErrorCode, error_response
from src.portal.shared.errors.store_errors import AccountNotFoundError, StoreError
from src.portal.shared.logging_utils import get_safe_error_info, identity_prefix
from src.portal.shared.middleware.require_tier import require_admin, require_tier
from src.portal.shared.models.account import AdminAccountUpdate, ProfileUpdate
from src.portal.shared.response_models import (
    AccountMeResponse,
    AdminAccountSummary,
    SessionResponse,
)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

plans_router = APIRouter(prefix=API_PREFIX, tags=["plans"])
auth_router = APIRouter(prefix=f"{API_PREFIX}/auth", tags=["auth"])
account_router = APIRouter(prefix=f"{API_PREFIX}/account", tags=["account"])
access_router = APIRouter(prefix=f"{API_PREFIX}/access", tags=["access"])
subscription_router = APIRouter(
    prefix=f"{API_PREFIX}/subscription", tags=["subscription"]
)
features_router = APIRouter(prefix=f"{API_PREFIX}/features", tags=["features"])
admin_router = APIRouter(prefix=f"{API_PREFIX}/admin", tags=["admin"])


class UpgradeRequest(BaseModel):
    target_tier: int


def _request_id(request: Request) -> str:
    return request.headers.get("x-request-id") or f"req-{uuid.uuid4().hex[:12]}"


def _error(
    request: Request,
    status_code: int,
    message: str,
    code: ErrorCode,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    return JSONResponse(
        error_response(status_code, message, code, _request_id(request), details),
        status_code=status_code,
        headers=get_no_cache_headers(),
    )


def _store_unavailable(request: Request, e: StoreError) -> JSONResponse:
    logger.error("Account store unavailable", extra=get_safe_error_info(e))
    return _error(
        request,
        503,
        "Account service temporarily unavailable. Please try again.",
        ErrorCode.DATABASE_ERROR,
    )


def _optional_identity(request: Request) -> Identity | None:
    return get_account_service().identity_for(dict(request.headers))


def _required_identity(request: Request) -> Identity:
    identity = _optional_identity(request)
    if identity is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return identity


def _offers(current_tier: int) -> list[dict[str, Any]]:
    return [
        PlanOffer.from_plan(get_plan(tier)).model_dump()
        for tier in available_upgrade_tiers(current_tier)
    ]


# ===================================================================
# Plans
# ===================================================================


@plans_router.get("/plans")
async def list_plans():
    """Plan catalog, ascending by tier."""
    plans = [
        PlanOffer.from_plan(PLAN_CATALOG[tier]).model_dump()
        for tier in sorted(PLAN_CATALOG)
    ]
    return JSONResponse({"plans": plans})


# ===================================================================
# Authentication
# ===================================================================


@auth_router.post("/session")
async def start_session(request: Request):
    """Sign-in hook: create the account on first sign-in, merge otherwise."""
    identity = _required_identity(request)
    try:
        account, created = get_account_service().sign_in(identity)
    except StoreError as e:
        return _store_unavailable(request, e)

    body = SessionResponse(
        created=created, tier=account.tier, tier_name=plan_name(account.tier)
    )
    return JSONResponse(
        body.model_dump(),
        status_code=201 if created else 200,
        headers=get_no_cache_headers(),
    )


# ===================================================================
# Own account
# ===================================================================


@account_router.get("/me")
async def get_me(request: Request):
    identity = _required_identity(request)
    try:
        account = get_account_service().account_for(identity.subject)
    except StoreError as e:
        return _store_unavailable(request, e)

    if account is None:
        return _error(request, 404, "Account not found", ErrorCode.NOT_FOUND)

    return JSONResponse(
        AccountMeResponse.from_account(account).model_dump(),
        headers=get_no_cache_headers(),
    )


@account_router.patch("/profile")
async def update_profile(request: Request, body: ProfileUpdate):
    identity = _required_identity(request)
    try:
        account = get_account_service().update_profile(identity.subject, body)
    except ValueError as e:
        return _error(request, 400, str(e), ErrorCode.VALIDATION_ERROR)
    except AccountNotFoundError:
        return _error(request, 404, "Account not found", ErrorCode.NOT_FOUND)
    except StoreError as e:
        return _store_unavailable(request, e)

    logger.info(
        "Profile updated",
        extra={
            "identity_prefix": identity_prefix(identity.subject),
            "fields": sorted(body.changes()),
        },
    )
    return JSONResponse(
        AccountMeResponse.from_account(account).model_dump(),
        headers=get_no_cache_headers(),
    )


@account_router.get("/navigation")
async def get_navigation(request: Request):
    """Dashboard menu. Signed-out callers see every paid feature locked."""
    identity = _optional_identity(request)
    plan_value = None
    if identity is not None:
        try:
            account = get_account_service().account_for(identity.subject)
        except StoreError as e:
            return _store_unavailable(request, e)
        plan_value = account.plan_value if account else None

    return JSONResponse(
        {"items": navigation_items(plan_value)}, headers=get_no_cache_headers()
    )


# ===================================================================
# Access decisions
# ===================================================================


@access_router.get("/{feature_key}")
async def check_access(request: Request, feature_key: str):
    """Access decision and upgrade offers for one feature."""
    try:
        feature = get_feature(feature_key)
    except KeyError:
        return _error(request, 404, "Feature not found", ErrorCode.NOT_FOUND)

    required = feature.requirement.required_tier
    identity = _optional_identity(request)
    if identity is None:
        decision = evaluate_access(None, required)
        return JSONResponse(
            {
                "feature": feature.key,
                "feature_name": feature.title,
                "signed_in": False,
                "has_access": False,
                "current_tier": decision.current_tier,
                "required_tier": required,
                "required_tier_name": plan_name(required),
                "offers": [],
            },
            headers=get_no_cache_headers(),
        )

    try:
        account = get_account_service().account_for(identity.subject)
    except StoreError as e:
        return _store_unavailable(request, e)

    decision = evaluate_access(account.plan_value if account else None, required)
    return JSONResponse(
        {
            "feature": feature.key,
            "feature_name": feature.title,
            "signed_in": True,
            "has_access": decision.has_access,
            "current_tier": decision.current_tier,
            "required_tier": required,
            "required_tier_name": plan_name(required),
            "offers": [] if decision.has_access else _offers(decision.current_tier),
        },
        headers=get_no_cache_headers(),
    )


# ===================================================================
# Subscription
# ===================================================================


@subscription_router.post("/upgrade")
async def upgrade_subscription(request: Request, body: UpgradeRequest):
    """Upgrade the caller's plan to a higher tier.

    401 when signed out (nothing is written), 400 when the target is not
    above the current tier, 503 when the store fails.
    """
    identity = _optional_identity(request)
    service = get_account_service()
    try:
        account = service.upgrade(identity, body.target_tier)
    except UpgradeError as e:
        status_code = 401 if identity is None else 400
        code = (
            ErrorCode.UNAUTHORIZED if identity is None
            else ErrorCode.UPGRADE_NOT_ALLOWED
        )
        return _error(request, status_code, e.user_message, code)
    except AccountNotFoundError:
        return _error(request, 404, "Account not found", ErrorCode.NOT_FOUND)
    except StoreError as e:
        return _store_unavailable(request, e)

    plan = get_plan(account.tier)
    return JSONResponse(
        {
            "tier": account.tier,
            "tier_name": plan.name,
            "features": list(plan.features),
        },
        headers=get_no_cache_headers(),
    )


# ===================================================================
# Gated features (server-side enforcement)
# ===================================================================


def _feature_payload(feature_key: str) -> dict[str, Any]:
    feature = get_feature(feature_key)
    return {
        "feature": feature.key,
        "title": feature.title,
        "href": feature.href,
        "required_tier": feature.requirement.required_tier,
    }


@features_router.get("/workshops")
@require_tier(PlanTier.STANDARD)
async def workshops(request: Request):
    return JSONResponse(_feature_payload("workshops"))


@features_router.get("/visibility")
@require_tier(PlanTier.STANDARD)
async def visibility(request: Request):
    return JSONResponse(_feature_payload("visibility"))


@features_router.get("/documents")
@require_tier(PlanTier.PREMIUM)
async def documents(request: Request):
    return JSONResponse(_feature_payload("documents"))


@features_router.get("/broadband")
@require_tier(PlanTier.PREMIUM)
async def broadband(request: Request):
    return JSONResponse(_feature_payload("broadband"))


# ===================================================================
# Administration
# ===================================================================


@admin_router.get("/accounts")
@require_admin
async def list_accounts(request: Request, limit: int = Query(100, ge=1, le=500)):
    try:
        accounts = get_account_service().list_accounts(limit=limit)
    except StoreError as e:
        return _store_unavailable(request, e)

    return JSONResponse(
        {
            "accounts": [
                AdminAccountSummary.from_account(a).model_dump(mode="json")
                for a in accounts
            ],
            "count": len(accounts),
        },
        headers=get_no_cache_headers(),
    )


@admin_router.patch("/accounts/{identity}")
@require_admin
async def update_account(request: Request, identity: str, body: AdminAccountUpdate):
    try:
        account = get_account_service().admin_update(identity, body)
    except ValueError as e:
        return _error(request, 400, str(e), ErrorCode.VALIDATION_ERROR)
    except AccountNotFoundError:
        return _error(request, 404, "Account not found", ErrorCode.NOT_FOUND)
    except StoreError as e:
        return _store_unavailable(request, e)

    return JSONResponse(
        AdminAccountSummary.from_account(account).model_dump(mode="json"),
        headers=get_no_cache_headers(),
    )


def include_routers(app):
    """Include all v1 routers in the FastAPI app."""
    app.include_router(plans_router)
    app.include_router(auth_router)
    app.include_router(account_router)
    app.include_router(access_router)
    app.include_router(subscription_router)
    app.include_router(features_router)
    app.include_router(admin_router)
