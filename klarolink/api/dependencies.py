"""FastAPI dependency injection providers.

This module provides dependency functions for injecting the database adapter,
services and the authenticated business into route handlers.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from klarolink.config.settings import Settings, get_settings
from klarolink.database import get_database
from klarolink.database.base import DatabaseAdapter
from klarolink.models.schemas import Business
from klarolink.services.ai_insights import FeedbackInsightsGenerator, get_insights_generator
from klarolink.services.auth import AuthService, verify_customer_token, verify_token

bearer_scheme = HTTPBearer(auto_error=False)


def get_db() -> DatabaseAdapter:
    """
    Get the database adapter.

    Uses the process-wide adapter selected from settings (Supabase or memory).
    """
    return get_database()


def get_auth_service(
    db: DatabaseAdapter = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(db, settings)


def get_ai_insights_generator() -> FeedbackInsightsGenerator:
    """
    Get the AI insights generator.

    Raises:
        ConfigurationError: When no Anthropic API key is configured (mapped to 503).
    """
    return get_insights_generator()


def get_current_business_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> int:
    """
    Business id from the ``Authorization: Bearer`` token.

    Raises:
        HTTPException: 401 when the header is missing or the token is invalid.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Unauthorized")

    business_id = verify_token(credentials.credentials, settings)
    if business_id is None:
        raise HTTPException(status_code=401, detail="Invalid token")
    return business_id


async def get_current_business(
    business_id: int = Depends(get_current_business_id),
    db: DatabaseAdapter = Depends(get_db),
) -> Business:
    """The authenticated business; 404 when it no longer exists."""
    business = await db.get_business(business_id)
    if business is None:
        raise HTTPException(status_code=404, detail="Business not found")
    return business


def get_optional_customer_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> Optional[int]:
    """Customer id when a valid customer token is sent; anonymous otherwise."""
    if credentials is None or not credentials.credentials:
        return None
    return verify_customer_token(credentials.credentials, settings)


def get_client_ip(request: Request) -> str:
    """Client address, honouring reverse proxy headers."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def ensure_same_business(requested_id: Optional[int], business_id: int) -> None:
    """403 when a body or path business id differs from the token's."""
    if requested_id is not None and requested_id != business_id:
        raise HTTPException(status_code=403, detail="Forbidden")
