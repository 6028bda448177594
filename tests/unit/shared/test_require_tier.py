"""Tests for the plan-tier and admin access decorators."""

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from src.portal.shared.access import PlanTier
from src.portal.shared.dependencies import get_account_store
from src.portal.shared.errors import InvalidTierError
from src.portal.shared.middleware import require_admin, require_tier
from src.portal.shared.models import AdminAccountUpdate, AuthProfile
from tests.helpers import auth_headers

SUBJECT = "user-1234567890"


class TestDecorationTime:
    @pytest.mark.parametrize("tier", [3, -1, "1", None, True])
    def test_invalid_tier_fails_fast(self, tier):
        with pytest.raises(InvalidTierError):
            require_tier(tier)

    def test_enum_and_int_accepted(self):
        require_tier(PlanTier.PREMIUM)
        require_tier(0)


@pytest.fixture
def app_client(accounts_table):
    app = FastAPI()

    @app.get("/standard")
    @require_tier(PlanTier.STANDARD)
    async def standard(request: Request):
        return {"tier": request.state.account.tier}

    @app.get("/admin")
    @require_admin
    async def admin(request: Request):
        return {"ok": True}

    @app.get("/no-request")
    @require_tier(0)
    async def no_request():
        return {"ok": True}

    return TestClient(app)


def _seed(plan="none", admin=False):
    store = get_account_store()
    store.ensure_account(AuthProfile(identity=SUBJECT))
    store.admin_update_account(
        SUBJECT, AdminAccountUpdate(plan_value=plan, is_admin=admin)
    )


class TestRequireTier:
    def test_signed_out(self, app_client):
        assert app_client.get("/standard").status_code == 401

    def test_no_record_treated_as_free(self, app_client):
        response = app_client.get("/standard", headers=auth_headers(SUBJECT))
        assert response.status_code == 403
        assert response.json()["detail"]["current_tier"] == 0

    def test_insufficient_tier(self, app_client):
        _seed("none")
        response = app_client.get("/standard", headers=auth_headers(SUBJECT))
        assert response.status_code == 403
        assert response.json()["detail"]["required_tier_name"] == "Standard"

    @pytest.mark.parametrize("plan", ["1", "2"])
    def test_sufficient_tier(self, app_client, plan):
        _seed(plan)
        response = app_client.get("/standard", headers=auth_headers(SUBJECT))
        assert response.status_code == 200
        assert response.json() == {"tier": int(plan)}

    def test_tier_comes_from_store_not_token(self, app_client):
        _seed("none")
        headers = auth_headers(SUBJECT, plan="2", tier=2)
        assert app_client.get("/standard", headers=headers).status_code == 403

    def test_plan_write_outside_api_applies_on_next_request(self, app_client):
        _seed("none")
        headers = auth_headers(SUBJECT)
        assert app_client.get("/standard", headers=headers).status_code == 403

        get_account_store().update_account_field(SUBJECT, "plan", "1")

        assert app_client.get("/standard", headers=headers).status_code == 200

    def test_handler_without_request(self, app_client):
        assert app_client.get("/no-request").status_code == 500


class TestRequireAdmin:
    def test_admin_allowed(self, app_client):
        _seed(admin=True)
        assert app_client.get("/admin", headers=auth_headers(SUBJECT)).status_code == 200

    def test_non_admin_denied(self, app_client):
        _seed(admin=False)
        response = app_client.get("/admin", headers=auth_headers(SUBJECT))
        assert response.status_code == 403
        assert response.json() == {"detail": "Access denied"}

    def test_no_record_denied(self, app_client):
        assert app_client.get("/admin", headers=auth_headers(SUBJECT)).status_code == 403

    def test_revoked_admin_denied_on_next_request(self, app_client):
        _seed(admin=True)
        headers = auth_headers(SUBJECT)
        assert app_client.get("/admin", headers=headers).status_code == 200

        get_account_store().admin_update_account(
            SUBJECT, AdminAccountUpdate(is_admin=False)
        )

        assert app_client.get("/admin", headers=headers).status_code == 403
