"""Lazy-init singleton dependency getters.

Each getter initializes its resource on first call and caches it for the
Lambda container lifetime. Tests call reset_singletons() between runs.

Usage:
    from src.portal.shared.dependencies import get_account_service

    service = get_account_service()
"""

import logging
import threading

logger = logging.getLogger(__name__)

_init_lock = threading.Lock()

# Singleton instances
_config = None
_accounts_table = None
_account_store = None
_account_service = None


def get_portal_config():
    """Get validated PortalConfig (lazy singleton).

    Raises:
        ConfigurationError: If environment variables are missing or invalid.
    """
    global _config
    if _config is None:
        from src.portal.shared.config import get_config

        with _init_lock:
            if _config is None:
                _config = get_config()
    return _config


def get_accounts_table():
    """Get DynamoDB accounts table resource (lazy singleton)."""
    global _accounts_table
    if _accounts_table is None:
        from src.portal.shared.dynamodb import get_table

        _accounts_table = get_table(get_portal_config().accounts_table)
    return _accounts_table


def get_account_store():
    global _account_store
    if _account_store is None:
        from src.portal.shared.accounts import AccountStore

        _account_store = AccountStore(get_accounts_table())
    return _account_store


def get_account_service():
    global _account_service
    if _account_service is None:
        from src.portal.shared.account_service import AccountService
        from src.portal.shared.middleware.auth_middleware import JWTConfig

        _account_service = AccountService(
            store=get_account_store(),
            jwt_config=JWTConfig.from_portal_config(get_portal_config()),
        )
    return _account_service


def create_dashboard_session(session_provider, *, scheduler=None):
    """Build a DashboardSession for one open page.

    Each page gets its own snapshot cache (ACCOUNT_CACHE_TTL_SECONDS) so the
    gate's post-upgrade invalidation and the page refresh see the same cache.
    Nothing shares it with the HTTP layer.
    """
    from src.portal.gate.session import DashboardSession
    from src.portal.shared.cache.account_cache import AccountSnapshotCache

    config = get_portal_config()
    return DashboardSession(
        get_account_store(),
        session_provider,
        AccountSnapshotCache(ttl_seconds=config.account_cache_ttl_seconds),
        scheduler=scheduler,
        countdown_seconds=config.upgrade_countdown_seconds,
    )


def get_no_cache_headers() -> dict[str, str]:
    """Cache-busting headers for account responses.

    Plan tier and admin flag must never be served from a browser or proxy
    cache after an upgrade.
    """
    return {
        "Cache-Control": "no-store, no-cache, must-revalidate",
        "Pragma": "no-cache",
        "Expires": "0",
    }


def reset_singletons():
    """Reset all singleton instances (for testing only)."""
    global _config, _accounts_table, _account_store, _account_service
    with _init_lock:
        _config = None
        _accounts_table = None
        _account_store = None
        _account_service = None
