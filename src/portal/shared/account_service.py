"""Account operations for the dashboard API.

Composes the AccountStore and bearer-token identity into the operations the
HTTP routes and access decorators need.

Entitlements (plan tier, admin flag) are read from the store on every
request. Plan writes come from the dashboard gate, the upgrade endpoint and
admin edits in any Lambda container, so no container may answer an access
decision from its own memory.
"""

import logging
from typing import Any

from src.portal.shared.access.policy import available_upgrade_tiers
from src.portal.shared.accounts import PLAN_FIELD, AccountStore
from src.portal.shared.auth.identity import Identity
from src.portal.shared.errors.access_errors import (
    InvalidUpgradeTargetError,
    UnauthorizedUpgradeError,
)
from src.portal.shared.errors.store_errors import AccountNotFoundError
from src.portal.shared.logging_utils import identity_prefix
from src.portal.shared.middleware.auth_middleware import JWTConfig, extract_identity
from src.portal.shared.models.account import (
    Account,
    AdminAccountUpdate,
    ProfileUpdate,
)

logger = logging.getLogger(__name__)


class AccountService:
    def __init__(
        self,
        store: AccountStore,
        jwt_config: JWTConfig | None,
    ):
        self.store = store
        self.jwt_config = jwt_config

    def identity_for(self, headers: dict[str, Any] | None) -> Identity | None:
        return extract_identity(headers, self.jwt_config)

    def account_for(self, identity: str) -> Account | None:
        """Current stored account; None when no record exists."""
        return self.store.get_account(identity)

    def sign_in(self, identity: Identity) -> tuple[Account, bool]:
        return self.store.ensure_account(identity.to_profile())

    def update_profile(self, identity: str, update: ProfileUpdate) -> Account:
        return self.store.update_profile(identity, update)

    def upgrade(self, identity: Identity | None, target_tier: int) -> Account:
        """Server-side upgrade of the caller's own plan.

        Raises:
            UnauthorizedUpgradeError: If signed out (nothing is written)
            AccountNotFoundError: If the caller has no record yet
            InvalidUpgradeTargetError: If target_tier is not above the current tier
            StoreError: If the read or write fails
        """
        if identity is None:
            raise UnauthorizedUpgradeError()

        account = self.store.get_account(identity.subject)
        if account is None:
            raise AccountNotFoundError(identity.subject)

        if target_tier not in available_upgrade_tiers(account.tier):
            raise InvalidUpgradeTargetError(account.tier, target_tier)

        updated = self.store.update_account_field(
            identity.subject, PLAN_FIELD, str(target_tier)
        )

        logger.info(
            "Plan upgraded via API",
            extra={
                "identity_prefix": identity_prefix(identity.subject),
                "from_tier": account.tier,
                "to_tier": target_tier,
            },
        )
        return updated

    def list_accounts(self, limit: int = 100) -> list[Account]:
        return self.store.list_accounts(limit=limit)

    def admin_update(self, identity: str, update: AdminAccountUpdate) -> Account:
        return self.store.admin_update_account(identity, update)
