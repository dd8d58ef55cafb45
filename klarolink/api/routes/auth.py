"""Authentication endpoints for the KlaroLink API.

Registration and login for businesses (dashboard owners), platform users and
end customers. Domain errors raised by AuthService are mapped to HTTP
responses by the application's exception handlers.
"""

import structlog
from fastapi import APIRouter, Depends

from klarolink.api.dependencies import get_auth_service
from klarolink.api.models import (
    AuthResponse,
    BusinessResponse,
    CustomerAuthResponse,
    CustomerLoginRequest,
    CustomerRegisteredResponse,
    CustomerResponse,
    ErrorResponse,
    LoginRequest,
    PublicBusiness,
    RegisterBusinessRequest,
    RegisterCustomerRequest,
    RegisterUserRequest,
    UserRegisteredResponse,
    UserResponse,
)
from klarolink.services.auth import AuthService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=AuthResponse,
    summary="Register a business",
    description="Create a business account and its public page slug.",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid registration data"},
        409: {"model": ErrorResponse, "description": "Email already registered"},
    },
)
async def register(
    request: RegisterBusinessRequest,
    auth: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """
    Register a new business.

    The slug is derived from the name; a numeric suffix is added when it is
    already taken.
    """
    business, token = await auth.register_business(
        name=request.name,
        email=request.email,
        password=request.password,
        profile_image=request.profile_image,
    )
    return AuthResponse(
        message="Business registered successfully",
        token=token,
        business=BusinessResponse.model_validate(business),
    )


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Business login",
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}},
)
async def login(
    request: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    business, token = await auth.authenticate_business(request.email, request.password)
    return AuthResponse(
        message="Login successful",
        token=token,
        business=BusinessResponse.model_validate(business),
    )


@router.post(
    "/register-user",
    response_model=UserRegisteredResponse,
    status_code=201,
    summary="Register a platform user",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid registration data"},
        409: {"model": ErrorResponse, "description": "Email already registered"},
    },
)
async def register_user(
    request: RegisterUserRequest,
    auth: AuthService = Depends(get_auth_service),
) -> UserRegisteredResponse:
    user = await auth.register_user(
        email=request.email,
        password=request.password,
        first_name=request.first_name,
        last_name=request.last_name,
    )
    return UserRegisteredResponse(
        message="User created successfully",
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/register-customer",
    response_model=CustomerRegisteredResponse,
    status_code=201,
    summary="Register a customer",
    description="Register an end customer with the business owning the given slug.",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid registration data"},
        404: {"model": ErrorResponse, "description": "Business not found"},
        409: {"model": ErrorResponse, "description": "Customer already registered"},
    },
)
async def register_customer(
    request: RegisterCustomerRequest,
    auth: AuthService = Depends(get_auth_service),
) -> CustomerRegisteredResponse:
    customer = await auth.register_customer(
        business_slug=request.business_slug,
        email=request.email,
        password=request.password,
        first_name=request.first_name,
        last_name=request.last_name,
        phone_number=request.phone_number,
        preferred_contact_method=request.preferred_contact_method,
        address=request.address,
        date_of_birth=request.date_of_birth,
        gender=request.gender,
    )
    return CustomerRegisteredResponse(
        message="Customer registered successfully",
        customer=CustomerResponse.model_validate(customer),
    )


@router.post(
    "/login-customer",
    response_model=CustomerAuthResponse,
    summary="Customer login",
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials or inactive account"},
        404: {"model": ErrorResponse, "description": "Business not found"},
    },
)
async def login_customer(
    request: CustomerLoginRequest,
    auth: AuthService = Depends(get_auth_service),
) -> CustomerAuthResponse:
    customer, business, token = await auth.authenticate_customer(
        business_slug=request.business_slug,
        email=request.email,
        password=request.password,
    )
    return CustomerAuthResponse(
        message="Login successful",
        token=token,
        customer=CustomerResponse.model_validate(customer),
        business=PublicBusiness.model_validate(business),
    )
