from __future__ import annotations

import html
import logging
from abc import ABC, abstractmethod

import resend
from fastapi.concurrency import run_in_threadpool

from app.services.errors import DeliveryError
from app.services.tokens import mask_email

logger = logging.getLogger(__name__)


def render_otp_email(code: str, name: str | None = None, ttl_minutes: int = 10) -> tuple[str, str]:
    subject = f"Your Verification Code: {code}"
    greeting = html.escape(name.strip()) if name and name.strip() else "there"
    body = f"""
    <div style="font-family:sans-serif;max-width:500px;margin:auto;padding:20px;border:1px solid #eee;border-radius:10px">
      <h2 style="color:#4f46e5">CareerPro AI</h2>
      <p>Hello {greeting},</p>
      <p>Your verification code for CareerPro AI is:</p>
      <div style="font-size:32px;font-weight:bold;letter-spacing:5px;color:#1e293b;margin:20px 0">{code}</div>
      <p style="color:#64748b;font-size:14px">This code will expire in {ttl_minutes} minutes.</p>
      <hr style="border:0;border-top:1px solid #eee;margin:20px 0">
      <p style="color:#94a3b8;font-size:12px">If you didn't request this code, please ignore this email.</p>
    </div>
    """
    return subject, body


class Mailer(ABC):
    @abstractmethod
    async def send_otp(self, to: str, code: str, name: str | None = None) -> None:
        """Deliver ``code`` to ``to``. Raises DeliveryError on failure."""


class ResendMailer(Mailer):
    def __init__(self, api_key: str, sender: str, *, ttl_minutes: int = 10) -> None:
        self._api_key = api_key.strip()
        self._sender = sender.strip()
        self._ttl_minutes = ttl_minutes

    async def send_otp(self, to: str, code: str, name: str | None = None) -> None:
        if not self._api_key:
            logger.error("RESEND_API_KEY is not set, cannot deliver OTP to %s", mask_email(to))
            raise DeliveryError()

        subject, body = render_otp_email(code, name, self._ttl_minutes)
        params = {"from": self._sender, "to": [to], "subject": subject, "html": body}

        resend.api_key = self._api_key
        try:
            # Emails.send is sync
            await run_in_threadpool(resend.Emails.send, params)
        except Exception as exc:
            logger.exception("Resend rejected OTP email to %s", mask_email(to))
            raise DeliveryError() from exc
