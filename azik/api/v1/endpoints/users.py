import logging
from urllib.parse import urlencode
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import RedirectResponse
from ....core.dependencies import Services, get_current_user, get_services
from ....core.exceptions import AppError
from ....schemas.base import MessageResponse
from ....schemas.user import (
    Address,
    LoginRequest,
    PushTokenUpdate,
    RegisterResponse,
    ResendVerificationRequest,
    Token,
    UserCreate,
    UserResponse,
    VerificationRequest,
)
from ....services.user_service import public_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["users"])

@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register_user(user: UserCreate, services: Services = Depends(get_services)):
    """
    Register a new user.

    The account stays unverified until the emailed link is followed. If the
    email could not be sent the account still exists and `emailSent` is false.
    """
    result = await services.users.register(user)
    if result["email_sent"]:
        message = "Registration successful. Please check your email to verify your account."
    else:
        message = "Registration successful, but the verification email could not be sent. Please request a new one."
    return {
        "message": message,
        "requires_verification": True,
        "email_sent": result["email_sent"],
        "user": result["user"],
    }

@router.post("/login", response_model=Token)
async def login(credentials: LoginRequest, services: Services = Depends(get_services)):
    """Log in with email and password and get a session token."""
    return await services.users.login(credentials.email, credentials.password)

@router.get("/verify-email")
async def verify_email_link(
    token: str = Query(..., min_length=1),
    services: Services = Depends(get_services)
):
    """
    Target of the link in the verification email.

    Redirects to the frontend with `success=true` or an `error` reason.
    """
    frontend_url = f"{services.settings.frontend_url}/verify-email"
    try:
        await services.users.verify_email(token)
    except AppError as e:
        reason = e.extra.get("reason", "invalid_token")
        return RedirectResponse(f"{frontend_url}?{urlencode({'error': reason})}", status_code=status.HTTP_303_SEE_OTHER)
    except Exception:
        logger.exception("Error verifying email")
        return RedirectResponse(f"{frontend_url}?error=server_error", status_code=status.HTTP_303_SEE_OTHER)

    return RedirectResponse(f"{frontend_url}?success=true", status_code=status.HTTP_303_SEE_OTHER)

@router.post("/verify-email", response_model=Token)
async def verify_email(request: VerificationRequest, services: Services = Depends(get_services)):
    """Verify an email address with the emailed token and log in."""
    return await services.users.verify_email(request.token)

@router.post("/resend-verification", response_model=MessageResponse)
async def resend_verification(request: ResendVerificationRequest, services: Services = Depends(get_services)):
    await services.users.resend_verification(request.email)
    return {"message": "Verification email sent"}

@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(current_user: dict = Depends(get_current_user)):
    """Get the current user's profile."""
    return public_user(current_user)

@router.put("/me/address", response_model=UserResponse)
async def update_address(
    address: Address,
    current_user: dict = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    """Replace the current user's address. All four fields are required."""
    return await services.users.update_address(current_user["id"], address)

@router.post("/me/push-token", response_model=MessageResponse)
async def save_push_token(
    request: PushTokenUpdate,
    current_user: dict = Depends(get_current_user),
    services: Services = Depends(get_services)
):
    await services.users.save_push_token(current_user["id"], request.push_token)
    return {"message": "Push token saved"}
