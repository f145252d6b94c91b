from __future__ import annotations


class AuthError(Exception):
    """Failure that is safe to show to the client as ``{"message": ...}``."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidRequest(AuthError):
    status_code = 400
    message = "Invalid request body"


class InvalidOrExpiredChallenge(AuthError):
    # one message for wrong code, expired code, lockout and no challenge at all
    status_code = 401
    message = "Invalid or expired OTP"


class InvalidSessionToken(AuthError):
    status_code = 401
    message = "Not authenticated"


class DeliveryError(AuthError):
    status_code = 500
    message = "Failed to send OTP"


class DuplicateKeyError(Exception):
    """A user row with the same email already exists."""


class ConfigurationError(RuntimeError):
    pass
