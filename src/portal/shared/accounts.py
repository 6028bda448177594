"""Account store backed by DynamoDB.

This is the document-store capability the rest of the portal consumes:

- get_account(identity) -> Account | None
- update_account_field(identity, field, value)
- ensure_account(profile) -> (Account, created)

plus the profile and administrative edits used by the dashboard API.

For On-Call Engineers:
    All failures surface as StoreReadError/StoreWriteError with the
    operation name; search logs for "Account store" and the identity prefix.
    Writes are single-item and conditional, so a failed write never leaves a
    half-updated account.

Security Notes:
    - A user can only write their own record: the identity always comes from
      the validated bearer token, never from request bodies.
    - Only whitelisted attributes are writable through update_account_field.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from aws_xray_sdk.core import xray_recorder
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import BotoCoreError, ClientError

from src.portal.shared.access.tiers import NO_PLAN
from src.portal.shared.dynamodb import build_update_expression
from src.portal.shared.errors.store_errors import (
    AccountNotFoundError,
    StoreReadError,
    StoreWriteError,
)
from src.portal.shared.logging_utils import (
    email_domain,
    get_safe_error_info,
    identity_prefix,
)
from src.portal.shared.models.account import (
    STORED_FIELD_NAMES,
    Account,
    AdminAccountUpdate,
    AuthProfile,
    ProfileUpdate,
    account_key,
)

logger = logging.getLogger(__name__)

PLAN_FIELD = "plan"

# Attributes a signed-in user may write on their own record
WRITABLE_FIELDS = frozenset({PLAN_FIELD, *STORED_FIELD_NAMES.keys()})

# Fields filled with "" only when the attribute is absent altogether
_ABSENT_ONLY_DEFAULTS = ("name", "surname", "gender", "dob")

_RECORD_EXISTS = "attribute_exists(PK)"
_RECORD_ABSENT = "attribute_not_exists(PK)"


def _is_conditional_failure(error: Exception) -> bool:
    if not isinstance(error, ClientError):
        return False
    return (
        error.response.get("Error", {}).get("Code")
        == "ConditionalCheckFailedException"
    )


def _now() -> datetime:
    return datetime.now(UTC)


class AccountStore:
    """DynamoDB-backed account records, one item per identity."""

    def __init__(self, table: Any):
        self._table = table

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _get_item(self, identity: str) -> dict[str, Any] | None:
        try:
            # Strongly consistent: a read right after a plan write must see it
            response = self._table.get_item(
                Key=account_key(identity), ConsistentRead=True
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(
                "Account store read failed",
                extra={
                    "identity_prefix": identity_prefix(identity),
                    **get_safe_error_info(e),
                },
            )
            raise StoreReadError("get", identity) from e
        return response.get("Item")

    def get_account(self, identity: str) -> Account | None:
        """Fetch an account; None when no record exists.

        Raises:
            StoreReadError: If the read itself fails
        """
        item = self._get_item(identity)
        if not item:
            return None
        return Account.from_item(item)

    def list_accounts(self, limit: int = 100) -> list[Account]:
        """Newest accounts first (administrative review).

        Scans every page before sorting so the ordering holds across the
        whole table, then truncates to limit.
        """
        accounts: list[Account] = []
        scan_kwargs: dict[str, Any] = {
            "FilterExpression": Attr("entity_type").eq("ACCOUNT"),
        }
        try:
            while True:
                response = self._table.scan(**scan_kwargs)
                accounts.extend(Account.from_item(i) for i in response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                scan_kwargs["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as e:
            logger.error("Account store scan failed", extra=get_safe_error_info(e))
            raise StoreReadError("scan") from e

        epoch = datetime.min.replace(tzinfo=UTC)
        accounts.sort(
            key=lambda a: _aware(a.created_at) or epoch,
            reverse=True,
        )
        return accounts[:limit]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _update(
        self,
        identity: str,
        changes: dict[str, Any],
        operation: str,
    ) -> Account:
        expression, names, values = build_update_expression(changes)
        try:
            response = self._table.update_item(
                Key=account_key(identity),
                UpdateExpression=expression,
                ConditionExpression=_RECORD_EXISTS,
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except (ClientError, BotoCoreError) as e:
            if _is_conditional_failure(e):
                logger.warning(
                    "Account store update on missing record",
                    extra={
                        "identity_prefix": identity_prefix(identity),
                        "operation": operation,
                    },
                )
                raise AccountNotFoundError(identity) from e
            logger.error(
                "Account store write failed",
                extra={
                    "identity_prefix": identity_prefix(identity),
                    "operation": operation,
                    **get_safe_error_info(e),
                },
            )
            raise StoreWriteError(operation, identity) from e
        return Account.from_item(response.get("Attributes", {}))

    @xray_recorder.capture("update_account_field")
    def update_account_field(
        self, identity: str, field: str = PLAN_FIELD, value: str = NO_PLAN
    ) -> Account:
        """Single-field update of an existing account.

        Raises:
            ValueError: If the field is not writable
            AccountNotFoundError: If the record does not exist
            StoreWriteError: If the write fails
        """
        if field not in WRITABLE_FIELDS:
            raise ValueError(f"Field is not writable: {field}")

        account = self._update(
            identity,
            {field: value, "updatedAt": _now().isoformat()},
            operation=f"update:{field}",
        )
        logger.info(
            "Account field updated",
            extra={"identity_prefix": identity_prefix(identity), "field": field},
        )
        return account

    @xray_recorder.capture("ensure_account")
    def ensure_account(self, profile: AuthProfile) -> tuple[Account, bool]:
        """Create the account with defaults, or fill in missing fields.

        Idempotent: called once per sign-in event. Existing plan, admin flag
        and profile values are never overwritten; only lastLogin always moves.

        Returns:
            (Account, created) where created=True for a new record
        """
        now = _now()
        item = self._get_item(profile.identity)

        if item is None:
            account = Account.new(profile, now)
            try:
                self._table.put_item(
                    Item=account.to_item(),
                    ConditionExpression=_RECORD_ABSENT,
                )
            except (ClientError, BotoCoreError) as e:
                if not _is_conditional_failure(e):
                    logger.error(
                        "Account creation failed",
                        extra={
                            "identity_prefix": identity_prefix(profile.identity),
                            **get_safe_error_info(e),
                        },
                    )
                    raise StoreWriteError("create", profile.identity) from e
                # Another sign-in created it first; merge into theirs
                logger.info(
                    "Account creation race detected, merging",
                    extra={"identity_prefix": identity_prefix(profile.identity)},
                )
                item = self._get_item(profile.identity) or {}
            else:
                logger.info(
                    "Account created",
                    extra={
                        "identity_prefix": identity_prefix(profile.identity),
                        "email_domain": email_domain(profile.email),
                    },
                )
                return account, True

        changes = _missing_field_defaults(item, profile)
        changes["lastLogin"] = now.isoformat()
        account = self._update(profile.identity, changes, operation="merge")
        return account, False

    def update_profile(self, identity: str, update: ProfileUpdate) -> Account:
        """Apply a self-service profile edit.

        Raises:
            ValueError: If a provided name is blank or nothing changes
        """
        changes = update.changes()
        if not changes:
            raise ValueError("No profile fields provided")
        if "name" in changes and not changes["name"].strip():
            raise ValueError("Name is required")

        stored = {_stored_name(k): v.strip() for k, v in changes.items()}
        stored["updatedAt"] = _now().isoformat()
        return self._update(identity, stored, operation="profile")

    @xray_recorder.capture("admin_update_account")
    def admin_update_account(
        self, identity: str, update: AdminAccountUpdate
    ) -> Account:
        """Administrative edit of plan, admin flag or profile.

        Raises:
            ValueError: If nothing changes
            AccountNotFoundError: If the record does not exist
        """
        changes: dict[str, Any] = {}
        if update.plan_value is not None:
            changes[PLAN_FIELD] = update.plan_value.strip() or NO_PLAN
        if update.is_admin is not None:
            changes["isAdmin"] = update.is_admin
        if update.profile is not None:
            for key, value in update.profile.changes().items():
                changes[_stored_name(key)] = value.strip()
        if not changes:
            raise ValueError("No account fields provided")

        changes["updatedAt"] = _now().isoformat()
        account = self._update(identity, changes, operation="admin")
        logger.info(
            "Account updated by administrator",
            extra={
                "identity_prefix": identity_prefix(identity),
                "fields": sorted(k for k in changes if k != "updatedAt"),
            },
        )
        return account


def _stored_name(field_name: str) -> str:
    for stored, model_name in STORED_FIELD_NAMES.items():
        if model_name == field_name:
            return stored
    raise ValueError(f"Unknown profile field: {field_name}")


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _missing_field_defaults(
    item: dict[str, Any], profile: AuthProfile
) -> dict[str, Any]:
    """Defaults for attributes an existing record lacks."""
    changes: dict[str, Any] = {}
    if not item.get("identity"):
        changes["identity"] = profile.identity
    if not item.get("entity_type"):
        changes["entity_type"] = "ACCOUNT"
    if not item.get("email") and profile.email:
        changes["email"] = profile.email
    if not item.get("displayName"):
        changes["displayName"] = profile.display_name or "Anonymous"
    if not item.get("photoURL"):
        changes["photoURL"] = profile.photo_url or ""
    if "isAdmin" not in item:
        changes["isAdmin"] = False
    if not str(item.get(PLAN_FIELD) or "").strip():
        changes[PLAN_FIELD] = NO_PLAN
    if not item.get("createdAt"):
        changes["createdAt"] = _now().isoformat()
    for field_name in _ABSENT_ONLY_DEFAULTS:
        if field_name not in item:
            changes[field_name] = ""
    return changes
