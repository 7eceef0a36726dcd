"""
app/api/session.py

Purpose: Session and authentication endpoints

- Exposes facade capabilities and the user record, never tokens
- Login, registration, phone verification, logout
"""

from fastapi import APIRouter, Depends

from app.api.deps import get_context
from app.context import AppContext
from app.core.logging import get_logger
from app.flow.status import derive_onboarding_status
from app.schemas.requests import LoginRequest, RegisterRequest, ResendOtpRequest, VerifyPhoneRequest
from app.schemas.response import MessageResponse, SessionResponse
from utils.constants import SUCCESS_MESSAGES

logger = get_logger(__name__)
router = APIRouter()


def _session_response(context: AppContext) -> SessionResponse:
    facade = context.facade
    return SessionResponse(
        capabilities=facade.snapshot(),
        user=facade.user,
        status=derive_onboarding_status(facade.user, facade.is_authenticated),
    )


@router.get("/session", response_model=SessionResponse)
async def get_session(context: AppContext = Depends(get_context)):
    """
    Current capabilities, user and account-setup status.
    """
    return _session_response(context)


@router.post("/auth/login", response_model=SessionResponse)
async def login(body: LoginRequest, context: AppContext = Depends(get_context)):
    await context.auth.login(body.identifier, body.password)
    return _session_response(context)


@router.post("/auth/register", response_model=MessageResponse)
async def register(body: RegisterRequest, context: AppContext = Depends(get_context)):
    """
    Creates the account; the backend sends an OTP to the phone.
    `data.phone` is the canonical number to verify.
    """
    result = await context.auth.register(
        full_name=body.full_name,
        email=body.email,
        password=body.password,
        phone=body.phone,
        country_code=body.country_code,
    )
    return MessageResponse(
        message=SUCCESS_MESSAGES["registration"],
        data={
            "phone": result.get("phone"),
            "otp_sent": result.get("otp_sent", True),
        },
    )


@router.post("/auth/verify-phone", response_model=SessionResponse)
async def verify_phone(body: VerifyPhoneRequest, context: AppContext = Depends(get_context)):
    await context.auth.verify_phone(body.phone, body.otp)
    return _session_response(context)


@router.post("/auth/resend-otp", response_model=MessageResponse)
async def resend_otp(body: ResendOtpRequest, context: AppContext = Depends(get_context)):
    await context.auth.resend_otp(body.phone)
    return MessageResponse(message=SUCCESS_MESSAGES["otp_resent"])


@router.post("/auth/logout", response_model=MessageResponse)
async def logout(context: AppContext = Depends(get_context)):
    await context.logout()
    return MessageResponse(message=SUCCESS_MESSAGES["logout"])
