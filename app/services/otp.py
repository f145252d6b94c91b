# app/services/otp.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable

from app.services.errors import InvalidOrExpiredChallenge
from app.services.store import CredentialStore
from app.services.tokens import hash_code, mask_email, new_otp_code, utcnow

logger = logging.getLogger(__name__)


class OtpManager:
    """Issues and validates short-lived numeric login codes, one live code per email."""

    def __init__(
        self,
        store: CredentialStore,
        secret: str,
        *,
        ttl: timedelta = timedelta(minutes=10),
        code_length: int = 6,
        max_attempts: int = 5,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._secret = secret
        self._ttl = ttl
        self._code_length = code_length
        self._max_attempts = max_attempts
        self._clock = clock

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def issue(self, email: str, name: str | None = None) -> str:
        """
        Generate a fresh code for ``email`` and store it, superseding any
        previous one. ``name`` rides along with the challenge until it is
        consumed. Returns the raw code for delivery; only its hash is stored.
        """
        code = new_otp_code(self._code_length)
        expires_at = self._clock() + self._ttl
        name = (name or "").strip() or None
        self._store.upsert_challenge(email, hash_code(code, self._secret), expires_at, name)
        logger.info("Issued OTP for %s, expires at %s", mask_email(email), expires_at.isoformat())
        return code

    def validate(self, email: str, code: str) -> str | None:
        """
        Consume the challenge for ``email`` if ``code`` matches exactly and is
        still live. Returns the display name stored at issue time.
        Raises InvalidOrExpiredChallenge otherwise.
        """
        now = self._clock()
        consumed = self._store.consume_challenge(email, hash_code(code, self._secret), now, self._max_attempts)
        if consumed is None:
            logger.info("OTP rejected for %s", mask_email(email))
            raise InvalidOrExpiredChallenge()

        logger.info("OTP verified for %s", mask_email(email))
        return consumed.name
