from pydantic import BaseModel


# fields are optional so a missing value gets our own 400 message, not a 422
class SendOtpIn(BaseModel):
    email: str | None = None
    name: str | None = None


class VerifyOtpIn(BaseModel):
    email: str | None = None
    otp: str | None = None
    name: str | None = None


class UserOut(BaseModel):
    id: str
    email: str
    name: str
    createdAt: str


class MessageOut(BaseModel):
    message: str


class VerifyOtpOut(BaseModel):
    user: UserOut
    token: str
    message: str


class MeOut(BaseModel):
    id: str
    email: str
