"""
Dashboard Lambda Handler
========================

FastAPI application serving the funding portal dashboard API v1.

For On-Call Engineers:
    If the dashboard is not accessible:
    1. Check the Lambda Function URL is configured correctly
    2. Verify CORS_ORIGINS for production (no localhost fallback there)
    3. Check ACCOUNTS_TABLE and JWT_SECRET are set
    4. Verify the DynamoDB table exists and the Lambda has permissions

For Developers:
    - Uses Mangum adapter for Lambda Function URL compatibility
    - Routes live in router.py; access decorators in shared/middleware
    - Configuration is read once per container via dependencies.py

X-Ray Tracing:
    X-Ray is enabled for all invocations; store writes are captured as
    subsegments.
"""

# X-Ray must be imported and patched before other imports
from aws_xray_sdk.core import patch_all  # noqa: E402

patch_all()

import logging  # noqa: E402
from contextlib import asynccontextmanager  # noqa: E402
from typing import Any  # noqa: E402

from fastapi import FastAPI  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402
from mangum import Mangum  # noqa: E402

from src.portal.dashboard.router import API_PREFIX, include_routers  # noqa: E402
from src.portal.shared.dependencies import get_portal_config  # noqa: E402

# Structured logging
logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Logs startup and shutdown events for monitoring.
    """
    config = get_portal_config()
    logger.info(
        "Dashboard Lambda starting",
        extra={
            "environment": config.environment,
            "table": config.accounts_table,
        },
    )
    yield
    logger.info("Dashboard Lambda shutting down")


def create_app() -> FastAPI:
    config = get_portal_config()

    app = FastAPI(
        title="Funding Portal Dashboard",
        description="Plan-tier access and subscription upgrades for the funding dashboard",
        version="1.0.0",
        lifespan=lifespan,
    )

    # No wildcard origins; production must configure CORS_ORIGINS explicitly
    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=False,  # Not needed for Bearer token auth
            allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        )
        logger.info(
            "CORS configured",
            extra={
                "allowed_origins": config.cors_origins,
                "environment": config.environment,
            },
        )
    else:
        logger.error(
            "CORS not configured - API will reject cross-origin requests",
            extra={"environment": config.environment},
        )

    @app.get(f"{API_PREFIX}/health")
    async def health_check():
        """Liveness probe. Does not touch DynamoDB."""
        return JSONResponse(
            {"status": "healthy", "environment": config.environment}
        )

    include_routers(app)
    return app


app = create_app()

# Mangum adapter for Lambda
handler = Mangum(app, lifespan="off")


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    AWS Lambda entry point.

    Wraps the FastAPI app with Mangum for Lambda Function URL compatibility.

    On-Call Note:
        If Lambda returns 500 errors:
        1. Check CloudWatch logs for the error type
        2. Verify all environment variables are set
        3. Check IAM permissions for DynamoDB access
    """
    logger.info(
        "Dashboard Lambda invoked",
        extra={
            "path": event.get("rawPath", event.get("path", "unknown")),
            "method": event.get("requestContext", {})
            .get("http", {})
            .get("method", "unknown"),
        },
    )

    return handler(event, context)
