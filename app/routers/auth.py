from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool

from app.schemas.auth import MeOut, MessageOut, SendOtpIn, VerifyOtpIn, VerifyOtpOut
from app.services.authz import get_current_user
from app.services.errors import InvalidRequest
from app.services.identity import IdentityResolver
from app.services.mailer import Mailer
from app.services.otp import OtpManager
from app.services.sessions import SessionClaims, SessionIssuer
from app.services.tokens import normalize_email

router = APIRouter(prefix="/api/auth", tags=["auth"])


def get_otp_manager(req: Request) -> OtpManager:
    return req.app.state.otp


def get_identity_resolver(req: Request) -> IdentityResolver:
    return req.app.state.identity


def get_session_issuer(req: Request) -> SessionIssuer:
    return req.app.state.sessions


def get_mailer(req: Request) -> Mailer:
    return req.app.state.mailer


@router.post("/send-otp", response_model=MessageOut)
async def send_otp(
    payload: SendOtpIn | None = None,
    otp: OtpManager = Depends(get_otp_manager),
    mailer: Mailer = Depends(get_mailer),
):
    # an empty body is treated like a body without an email
    payload = payload or SendOtpIn()
    email = normalize_email(payload.email or "")
    if not email:
        raise InvalidRequest("Email is required")

    code = await run_in_threadpool(otp.issue, email, payload.name)
    # a delivery failure leaves the challenge in place; the client just asks again
    await mailer.send_otp(email, code, payload.name)

    return {"message": "OTP sent successfully"}


@router.post("/verify-otp", response_model=VerifyOtpOut)
def verify_otp(
    payload: VerifyOtpIn | None = None,
    otp: OtpManager = Depends(get_otp_manager),
    identity: IdentityResolver = Depends(get_identity_resolver),
    sessions: SessionIssuer = Depends(get_session_issuer),
):
    payload = payload or VerifyOtpIn()
    email = normalize_email(payload.email or "")
    if not email or not payload.otp:
        raise InvalidRequest("Email and OTP are required")

    requested_name = otp.validate(email, payload.otp)
    user = identity.resolve(email, payload.name or requested_name)
    token = sessions.issue(user)

    return {"user": user.to_dict(), "token": token, "message": "Authentication successful"}


@router.get("/me", response_model=MeOut)
def me(claims: SessionClaims = Depends(get_current_user)):
    return {"id": claims.user_id, "email": claims.email}
