"""
Authentication & Account Service.

bcrypt password hashing, HS256 access tokens, input validation helpers and
the account operations (businesses, customers, platform users) layered
directly on the database adapter.

Usage:
    service = AuthService(get_database())
    business, token = await service.register_business("Cafe Luna", "hi@luna.cafe", "secret1")
    business_id = verify_token(token)
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import bcrypt
import jwt
import structlog

from klarolink.config.settings import Settings, get_settings
from klarolink.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from klarolink.database.base import DatabaseAdapter
from klarolink.models.schemas import BackgroundType, Business, Customer, User

logger = structlog.get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
HEX_COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}){1,2}$")

MIN_PASSWORD_LENGTH = 6
BCRYPT_MAX_PASSWORD_BYTES = 72
MAX_SLUG_ATTEMPTS = 100
CUSTOMER_TOKEN_TYPE = "customer"


# =============================================================================
# Passwords
# =============================================================================


def _password_bytes(password: str) -> bytes:
    # bcrypt ignores everything past 72 bytes; newer releases raise instead
    return password.encode("utf-8")[:BCRYPT_MAX_PASSWORD_BYTES]


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash a password with bcrypt (cost from settings unless given)."""
    if rounds is None:
        rounds = get_settings().bcrypt_rounds
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("invalid_password_hash")
        return False


# =============================================================================
# Tokens
# =============================================================================


def _encode(claims: dict[str, Any], settings: Settings) -> str:
    payload = {
        **claims,
        "iat": datetime.now(timezone.utc),
        "exp": datetime.now(timezone.utc) + timedelta(days=settings.jwt_expiry_days),
    }
    return jwt.encode(
        payload,
        settings.jwt_secret.get_secret_value(),
        algorithm=settings.jwt_algorithm,
    )


def _decode(token: str, settings: Settings) -> Optional[dict[str, Any]]:
    try:
        return jwt.decode(
            token,
            settings.jwt_secret.get_secret_value(),
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.PyJWTError as e:
        logger.debug("token_rejected", error=str(e))
        return None


def generate_token(business_id: int, settings: Optional[Settings] = None) -> str:
    """Issue a business access token."""
    return _encode({"businessId": business_id}, settings or get_settings())


def verify_token(token: str, settings: Optional[Settings] = None) -> Optional[int]:
    """Business id carried by a valid business token, else None."""
    payload = _decode(token, settings or get_settings())
    if not payload or payload.get("type") == CUSTOMER_TOKEN_TYPE:
        return None
    business_id = payload.get("businessId")
    return business_id if isinstance(business_id, int) else None


def generate_customer_token(customer_id: int, settings: Optional[Settings] = None) -> str:
    """Issue a customer token (used to link submissions to a customer)."""
    return _encode(
        {"customerId": customer_id, "type": CUSTOMER_TOKEN_TYPE},
        settings or get_settings(),
    )


def verify_customer_token(token: str, settings: Optional[Settings] = None) -> Optional[int]:
    """Customer id carried by a valid customer token, else None."""
    payload = _decode(token, settings or get_settings())
    if not payload or payload.get("type") != CUSTOMER_TOKEN_TYPE:
        return None
    customer_id = payload.get("customerId")
    return customer_id if isinstance(customer_id, int) else None


# =============================================================================
# Validation
# =============================================================================


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email or ""))


def is_valid_slug(slug: str) -> bool:
    return bool(SLUG_PATTERN.match(slug or ""))


def is_valid_hex_color(value: str) -> bool:
    return bool(HEX_COLOR_PATTERN.match(value or ""))


def generate_slug(name: str) -> str:
    """URL slug from a business name ("Joe's Café & Bar" -> "joe-s-caf-bar")."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "business"


def _validate_credentials(email: str, password: str) -> None:
    if not is_valid_email(email):
        raise ValidationError("Please enter a valid email address", field="email")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
            field="password",
        )


# =============================================================================
# Account Service
# =============================================================================


class AuthService:
    """Account operations for businesses, customers and platform users."""

    def __init__(self, db: DatabaseAdapter, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()

    # -------------------------------------------------------------------------
    # Businesses
    # -------------------------------------------------------------------------

    async def get_business(self, business_id: int) -> Optional[Business]:
        return await self.db.get_business(business_id)

    async def get_business_by_email(self, email: str) -> Optional[Business]:
        return await self.db.get_business_by_email(email)

    async def get_business_by_slug(self, slug: str) -> Optional[Business]:
        return await self.db.get_business_by_slug(slug)

    async def create_business(
        self,
        name: str,
        email: str,
        password_hash: str,
        slug: str,
        profile_image: Optional[str] = None,
    ) -> Business:
        """Insert a business with the default colour background."""
        if not is_valid_slug(slug):
            raise ValidationError("Slug may only contain lowercase letters, digits and dashes", field="slug")

        return await self.db.create_business({
            "name": name,
            "email": email,
            "password_hash": password_hash,
            "slug": slug,
            "profile_image": profile_image,
            "background_type": "color",
            "background_value": self.settings.default_background_color,
        })

    async def register_business(
        self,
        name: str,
        email: str,
        password: str,
        profile_image: Optional[str] = None,
    ) -> tuple[Business, str]:
        """
        Register a business and issue its access token.

        The slug is derived from the name; when taken, ``-2``, ``-3``, ... are
        appended until a free one is found.

        Raises:
            ValidationError: Missing name, bad email or short password.
            ConflictError: Email already registered, or no free slug.
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Business name is required", field="name")
        _validate_credentials(email, password)

        if await self.db.get_business_by_email(email):
            raise ConflictError("Business", "email", email)

        password_hash = hash_password(password, self.settings.bcrypt_rounds)
        base_slug = generate_slug(name)
        slug = base_slug

        for attempt in range(2, MAX_SLUG_ATTEMPTS + 2):
            try:
                business = await self.create_business(
                    name=name,
                    email=email,
                    password_hash=password_hash,
                    slug=slug,
                    profile_image=profile_image,
                )
            except ConflictError as e:
                if e.field == "email":
                    raise
                slug = f"{base_slug}-{attempt}"
                continue

            logger.info("business_registered", business_id=business.id, slug=business.slug)
            return business, generate_token(business.id, self.settings)

        raise ConflictError("Business", "slug", base_slug)

    async def authenticate_business(self, email: str, password: str) -> tuple[Business, str]:
        """Check credentials and issue a token. Raises AuthenticationError."""
        business = await self.db.get_business_by_email(email)
        if not business or not verify_password(password, business.password_hash):
            logger.warning("business_login_failed", email=email)
            raise AuthenticationError("Invalid email or password")

        logger.info("business_logged_in", business_id=business.id)
        return business, generate_token(business.id, self.settings)

    async def update_business_background(
        self,
        business_id: int,
        background_type: BackgroundType,
        background_value: str,
    ) -> Business:
        """Switch the feedback page background between a colour and an image."""
        if background_type not in ("color", "image"):
            raise ValidationError("Background type must be 'color' or 'image'", field="background_type")
        if not background_value:
            raise ValidationError("Background value is required", field="background_value")
        if background_type == "color" and not is_valid_hex_color(background_value):
            raise ValidationError("Background colour must be a hex value like #6366f1", field="background_value")

        business = await self.db.update_business(business_id, {
            "background_type": background_type,
            "background_value": background_value,
        })
        if business is None:
            raise NotFoundError("Business", business_id)
        return business

    async def update_button_customization(
        self,
        business_id: int,
        submit_button_color: Optional[str] = None,
        submit_button_text_color: Optional[str] = None,
        submit_button_hover_color: Optional[str] = None,
    ) -> Business:
        """
        Restyle the feedback page's submit button.

        Only the colours given are changed.

        Raises:
            ValidationError: No colour given, or one is not a hex value.
            NotFoundError: The business does not exist.
        """
        colors = {
            "submit_button_color": submit_button_color,
            "submit_button_text_color": submit_button_text_color,
            "submit_button_hover_color": submit_button_hover_color,
        }
        changes = {name: value for name, value in colors.items() if value}
        if not changes:
            raise ValidationError("At least one button colour is required", field="submit_button_color")

        for name, value in changes.items():
            if not is_valid_hex_color(value):
                label = name.replace("_", " ")
                raise ValidationError(f"Invalid {label} format", field=name)

        business = await self.db.update_business(business_id, changes)
        if business is None:
            raise NotFoundError("Business", business_id)

        logger.info("button_customization_updated", business_id=business_id, fields=sorted(changes))
        return business

    # -------------------------------------------------------------------------
    # Customers
    # -------------------------------------------------------------------------

    async def register_customer(
        self,
        business_slug: str,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        **profile: Any,
    ) -> Customer:
        """Register a customer against the business owning ``business_slug``."""
        _validate_credentials(email, password)
        if not (first_name or "").strip() or not (last_name or "").strip():
            raise ValidationError("First and last name are required", field="first_name")

        business = await self.db.get_business_by_slug(business_slug)
        if business is None:
            raise NotFoundError("Business", business_slug)

        customer = await self.db.create_customer({
            "business_id": business.id,
            "email": email,
            "password_hash": hash_password(password, self.settings.bcrypt_rounds),
            "first_name": first_name.strip(),
            "last_name": last_name.strip(),
            **{key: value for key, value in profile.items() if value is not None},
        })
        logger.info("customer_registered", customer_id=customer.id, business_id=business.id)
        return customer

    async def authenticate_customer(
        self, business_slug: str, email: str, password: str
    ) -> tuple[Customer, Business, str]:
        """Check customer credentials for a business and issue a customer token."""
        business = await self.db.get_business_by_slug(business_slug)
        if business is None:
            raise NotFoundError("Business", business_slug)

        customer = await self.db.get_customer_by_email(email, business.id)
        if customer is None:
            logger.warning("customer_login_failed", reason="unknown_email", business_id=business.id)
            raise AuthenticationError("Invalid email or password")
        if not customer.is_active:
            logger.warning("customer_login_failed", reason="inactive", customer_id=customer.id)
            raise AuthenticationError("Account is inactive. Please contact support.")
        if not verify_password(password, customer.password_hash):
            logger.warning("customer_login_failed", reason="bad_password", customer_id=customer.id)
            raise AuthenticationError("Invalid email or password")

        logger.info("customer_logged_in", customer_id=customer.id)
        return customer, business, generate_customer_token(customer.id, self.settings)

    # -------------------------------------------------------------------------
    # Platform users
    # -------------------------------------------------------------------------

    async def register_user(
        self, email: str, password: str, first_name: str, last_name: str
    ) -> User:
        """Create a platform user. Raises ConflictError on duplicate email."""
        _validate_credentials(email, password)
        if not (first_name or "").strip() or not (last_name or "").strip():
            raise ValidationError("All fields are required", field="first_name")

        if await self.db.get_user_by_email(email):
            raise ConflictError("User", "email", email)

        user = await self.db.create_user({
            "email": email,
            "password_hash": hash_password(password, self.settings.bcrypt_rounds),
            "first_name": first_name.strip(),
            "last_name": last_name.strip(),
            "role": "user",
        })
        logger.info("user_registered", user_id=user.id)
        return user
