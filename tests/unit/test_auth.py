"""Unit tests for passwords, tokens and the account service."""

from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
import pytest

from klarolink.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from klarolink.database.memory import MemoryDatabaseAdapter
from klarolink.services.auth import (
    AuthService,
    generate_customer_token,
    generate_slug,
    generate_token,
    hash_password,
    is_valid_email,
    is_valid_hex_color,
    is_valid_slug,
    verify_customer_token,
    verify_password,
    verify_token,
)


class TestPasswords:
    """Test bcrypt hashing."""

    def test_hash_and_verify(self):
        hashed = hash_password("secret123", rounds=4)

        assert hashed.startswith("$2")
        assert verify_password("secret123", hashed) is True
        assert verify_password("wrong", hashed) is False

    def test_malformed_hash_does_not_verify(self):
        assert verify_password("secret123", "not-a-bcrypt-hash") is False

    def test_long_password(self):
        password = "p" * 80
        hashed = hash_password(password, rounds=4)

        assert verify_password(password, hashed) is True
        assert verify_password("p" * 79, hashed) is True
        assert verify_password("p" * 71, hashed) is False

    def test_multibyte_password_cut_at_72_bytes(self):
        password = "\u00e9" * 40
        hashed = hash_password(password, rounds=4)

        assert verify_password(password, hashed) is True
        assert verify_password("\u00e9" * 36 + "x", hashed) is True

    def test_hash_from_truncating_store_still_verifies(self):
        password = "correct horse battery staple " * 3
        stored = bcrypt.hashpw(password.encode("utf-8")[:72], bcrypt.gensalt(rounds=4)).decode("utf-8")

        assert verify_password(password, stored) is True


class TestTokens:
    """Test business and customer tokens."""

    def test_business_token_round_trip(self, settings):
        token = generate_token(42, settings)

        assert verify_token(token, settings) == 42

    def test_customer_token_is_not_a_business_token(self, settings):
        token = generate_customer_token(9, settings)

        assert verify_customer_token(token, settings) == 9
        assert verify_token(token, settings) is None

    def test_business_token_is_not_a_customer_token(self, settings):
        assert verify_customer_token(generate_token(42, settings), settings) is None

    def test_tampered_token_rejected(self, settings):
        token = generate_token(42, settings)

        assert verify_token(token[:-2] + "xx", settings) is None
        assert verify_token("garbage", settings) is None

    def test_expired_token_rejected(self, settings):
        token = jwt.encode(
            {"businessId": 42, "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
            settings.jwt_secret.get_secret_value(),
            algorithm="HS256",
        )

        assert verify_token(token, settings) is None

    def test_token_signed_with_other_secret_rejected(self, settings):
        token = jwt.encode({"businessId": 42}, "another-secret-key-of-reasonable-length", algorithm="HS256")

        assert verify_token(token, settings) is None


class TestValidationHelpers:
    """Test email, slug and colour checks."""

    def test_email(self):
        assert is_valid_email("owner@cafe.com")
        assert not is_valid_email("owner@cafe")
        assert not is_valid_email("owner @cafe.com")
        assert not is_valid_email("")

    def test_slug(self):
        assert is_valid_slug("cafe-luna-2")
        assert not is_valid_slug("Cafe-Luna")
        assert not is_valid_slug("cafe--luna")
        assert not is_valid_slug("-cafe")

    def test_hex_color(self):
        assert is_valid_hex_color("#6366f1")
        assert is_valid_hex_color("#FFF")
        assert not is_valid_hex_color("6366f1")
        assert not is_valid_hex_color("#12345")

    def test_generate_slug(self):
        assert generate_slug("Joe's Café & Bar") == "joe-s-caf-bar"
        assert generate_slug("  Cafe Luna  ") == "cafe-luna"
        assert generate_slug("!!!") == "business"


class TestBusinessAccounts:
    """Test business registration and login."""

    @pytest.fixture
    def service(self, settings):
        return AuthService(MemoryDatabaseAdapter(seed=False), settings)

    @pytest.mark.asyncio
    async def test_register_issues_token(self, service, settings):
        business, token = await service.register_business("Cafe Luna", "hi@luna.cafe", "secret1")

        assert business.slug == "cafe-luna"
        assert business.background_type == "color"
        assert business.background_value == settings.default_background_color
        assert business.password_hash != "secret1"
        assert verify_token(token, settings) == business.id

    @pytest.mark.asyncio
    async def test_slug_suffix_when_taken(self, service):
        first, _ = await service.register_business("Cafe Luna", "a@luna.cafe", "secret1")
        second, _ = await service.register_business("Cafe Luna", "b@luna.cafe", "secret1")
        third, _ = await service.register_business("Cafe  Luna!", "c@luna.cafe", "secret1")

        assert [first.slug, second.slug, third.slug] == ["cafe-luna", "cafe-luna-2", "cafe-luna-3"]

    @pytest.mark.asyncio
    async def test_duplicate_email(self, service):
        await service.register_business("Cafe Luna", "hi@luna.cafe", "secret1")

        with pytest.raises(ConflictError):
            await service.register_business("Other Cafe", "hi@luna.cafe", "secret1")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "name,email,password,field",
        [
            ("", "hi@luna.cafe", "secret1", "name"),
            ("Cafe Luna", "not-an-email", "secret1", "email"),
            ("Cafe Luna", "hi@luna.cafe", "12345", "password"),
        ],
    )
    async def test_invalid_registration(self, service, name, email, password, field):
        with pytest.raises(ValidationError) as exc_info:
            await service.register_business(name, email, password)

        assert exc_info.value.field == field

    @pytest.mark.asyncio
    async def test_long_password_registration_and_login(self, service):
        password = "x" * 80
        registered, _ = await service.register_business("Cafe Luna", "hi@luna.cafe", password)

        business, _ = await service.authenticate_business("hi@luna.cafe", password)

        assert business.id == registered.id

    @pytest.mark.asyncio
    async def test_login(self, service, settings):
        registered, _ = await service.register_business("Cafe Luna", "hi@luna.cafe", "secret1")

        business, token = await service.authenticate_business("hi@luna.cafe", "secret1")

        assert business.id == registered.id
        assert verify_token(token, settings) == registered.id

    @pytest.mark.asyncio
    async def test_login_failures_share_message(self, service):
        await service.register_business("Cafe Luna", "hi@luna.cafe", "secret1")

        with pytest.raises(AuthenticationError) as wrong_password:
            await service.authenticate_business("hi@luna.cafe", "wrong-password")
        with pytest.raises(AuthenticationError) as unknown_email:
            await service.authenticate_business("nobody@luna.cafe", "secret1")

        assert wrong_password.value.message == unknown_email.value.message == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_background(self, service):
        business, _ = await service.register_business("Cafe Luna", "hi@luna.cafe", "secret1")

        updated = await service.update_business_background(business.id, "image", "https://img/bg.png")

        assert (updated.background_type, updated.background_value) == ("image", "https://img/bg.png")

        with pytest.raises(ValidationError):
            await service.update_business_background(business.id, "color", "blue")
        with pytest.raises(NotFoundError):
            await service.update_business_background(999, "color", "#000000")

    @pytest.mark.asyncio
    async def test_button_colours_default(self, service):
        business, _ = await service.register_business("Cafe Luna", "hi@luna.cafe", "secret1")

        assert business.submit_button_color == "#CC79F0"
        assert business.submit_button_text_color == "#FDFFFA"
        assert business.submit_button_hover_color == "#3E7EF7"

    @pytest.mark.asyncio
    async def test_button_customization_changes_given_colours(self, service):
        business, _ = await service.register_business("Cafe Luna", "hi@luna.cafe", "secret1")

        updated = await service.update_button_customization(
            business.id, submit_button_color="#112233", submit_button_hover_color="#445566"
        )

        assert updated.submit_button_color == "#112233"
        assert updated.submit_button_hover_color == "#445566"
        assert updated.submit_button_text_color == "#FDFFFA"

    @pytest.mark.asyncio
    async def test_button_customization_rejects_bad_input(self, service):
        business, _ = await service.register_business("Cafe Luna", "hi@luna.cafe", "secret1")

        with pytest.raises(ValidationError) as invalid:
            await service.update_button_customization(business.id, submit_button_text_color="white")
        with pytest.raises(ValidationError) as empty:
            await service.update_button_customization(business.id)
        with pytest.raises(NotFoundError):
            await service.update_button_customization(999, submit_button_color="#000000")

        assert invalid.value.field == "submit_button_text_color"
        assert empty.value.field == "submit_button_color"


class TestCustomerAccounts:
    """Test customer registration and login."""

    @pytest.fixture
    def db(self):
        return MemoryDatabaseAdapter()

    @pytest.fixture
    def service(self, db, settings):
        return AuthService(db, settings)

    @pytest.mark.asyncio
    async def test_register_and_login(self, service, settings):
        customer = await service.register_customer(
            "demo-business", "ana@example.com", "secret1", " Ana ", "Silva", phone_number="555-0100"
        )

        logged_in, business, token = await service.authenticate_customer(
            "demo-business", "ana@example.com", "secret1"
        )

        assert customer.business_id == 1
        assert customer.first_name == "Ana"
        assert customer.phone_number == "555-0100"
        assert logged_in.id == customer.id
        assert business.slug == "demo-business"
        assert verify_customer_token(token, settings) == customer.id

    @pytest.mark.asyncio
    async def test_customer_scoped_to_business(self, service):
        await service.register_customer("demo-business", "ana@example.com", "secret1", "Ana", "Silva")

        with pytest.raises(AuthenticationError):
            await service.authenticate_customer("acme-restaurant", "ana@example.com", "secret1")

    @pytest.mark.asyncio
    async def test_unknown_business(self, service):
        with pytest.raises(NotFoundError):
            await service.register_customer("no-such-page", "ana@example.com", "secret1", "Ana", "Silva")

    @pytest.mark.asyncio
    async def test_duplicate_customer(self, service):
        await service.register_customer("demo-business", "ana@example.com", "secret1", "Ana", "Silva")

        with pytest.raises(ConflictError):
            await service.register_customer("demo-business", "ana@example.com", "secret1", "Ana", "Silva")

    @pytest.mark.asyncio
    async def test_inactive_customer_cannot_login(self, service, db):
        customer = await service.register_customer(
            "demo-business", "ana@example.com", "secret1", "Ana", "Silva"
        )
        db.customers[0] = customer.model_copy(update={"customer_status": "inactive"})

        with pytest.raises(AuthenticationError) as exc_info:
            await service.authenticate_customer("demo-business", "ana@example.com", "secret1")

        assert "inactive" in exc_info.value.message


class TestPlatformUsers:
    """Test platform user registration."""

    @pytest.mark.asyncio
    async def test_register_user(self, settings):
        service = AuthService(MemoryDatabaseAdapter(seed=False), settings)

        user = await service.register_user("u@example.com", "secret1", "Uma", "Ser")

        assert user.role == "user"
        assert verify_password("secret1", user.password_hash)

        with pytest.raises(ConflictError):
            await service.register_user("u@example.com", "secret1", "Uma", "Ser")

    @pytest.mark.asyncio
    async def test_names_required(self, settings):
        service = AuthService(MemoryDatabaseAdapter(seed=False), settings)

        with pytest.raises(ValidationError):
            await service.register_user("u@example.com", "secret1", " ", "Ser")
