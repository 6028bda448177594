"""Document store error types.

boto3 raises ``ClientError``/``BotoCoreError`` for everything from throttling
to missing permissions. AccountStore converts those into the types below so
callers (SubscriptionGate, the HTTP layer) handle one small hierarchy and
never depend on botocore.
"""


class StoreError(Exception):
    """Base class for account store failures."""

    def __init__(self, operation: str, identity: str | None = None):
        self.operation = operation
        self.identity = identity
        super().__init__(f"Account store {operation} failed")


class StoreReadError(StoreError):
    """Reading an account record failed (network, permission, throttling)."""

    pass


class StoreWriteError(StoreError):
    """Writing an account record failed.

    Writes are single-field or conditional puts, so a failure never leaves a
    partially written record behind. The caller may retry.
    """

    pass


class AccountNotFoundError(StoreError):
    """Raised when an administrative edit targets a record that does not exist."""

    def __init__(self, identity: str):
        super().__init__("lookup", identity)
        self.args = (f"Account not found: {identity[:8]}...",)
