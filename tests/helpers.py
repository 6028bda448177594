"""Test helpers shared across test modules (tokens, tables, scheduler)."""

import logging
import os
import time

import boto3
import jwt

TEST_JWT_ISSUER = "funding-portal"


def create_accounts_table(table_name: str | None = None):
    """Create the accounts table inside an active moto mock."""
    dynamodb = boto3.resource("dynamodb", region_name="us-east-1")
    return dynamodb.create_table(
        TableName=table_name or os.environ["ACCOUNTS_TABLE"],
        KeySchema=[
            {"AttributeName": "PK", "KeyType": "HASH"},
            {"AttributeName": "SK", "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": "PK", "AttributeType": "S"},
            {"AttributeName": "SK", "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )


def make_token(
    subject: str = "user-1234567890",
    *,
    email: str | None = "owner@smallbiz.example",
    name: str | None = "Thandi",
    secret: str | None = None,
    issuer: str = TEST_JWT_ISSUER,
    expires_in: int = 3600,
    **extra,
) -> str:
    """Sign a bearer token the way the identity provider would."""
    now = int(time.time())
    payload = {
        "sub": subject,
        "iat": now,
        "exp": now + expires_in,
        "iss": issuer,
        **extra,
    }
    if email is not None:
        payload["email"] = email
    if name is not None:
        payload["name"] = name
    return jwt.encode(payload, secret or os.environ["JWT_SECRET"], algorithm="HS256")


def auth_headers(subject: str = "user-1234567890", **kwargs) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(subject, **kwargs)}"}


class FakeHandle:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Deterministic stand-in for the event loop's call_later.

    advance(seconds) runs every callback that becomes due, in order.
    """

    def __init__(self):
        self.now = 0.0
        self._handles: list[FakeHandle] = []

    def call_later(self, delay, callback):
        handle = FakeHandle(self.now + delay, callback)
        self._handles.append(handle)
        return handle

    @property
    def pending(self) -> list[FakeHandle]:
        return [h for h in self._handles if not h.cancelled]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = sorted(
                (h for h in self.pending if h.when <= target), key=lambda h: h.when
            )
            if not due:
                break
            handle = due[0]
            self._handles.remove(handle)
            self.now = handle.when
            handle.callback()
        self.now = target


def assert_error_logged(caplog, pattern: str):
    """Assert an ERROR (or worse) log matching pattern was captured."""
    assert any(
        pattern in record.message
        for record in caplog.records
        if record.levelno >= logging.ERROR
    ), f"Expected ERROR log matching '{pattern}' not found"


def assert_warning_logged(caplog, pattern: str):
    """Assert a WARNING log matching pattern was captured."""
    assert any(
        pattern in record.message
        for record in caplog.records
        if record.levelno == logging.WARNING
    ), f"Expected WARNING log matching '{pattern}' not found"
