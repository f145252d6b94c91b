from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Callable

from app.models.user import User
from app.services.errors import DuplicateKeyError
from app.services.store import CredentialStore
from app.services.tokens import mask_email, normalize_email, utcnow

logger = logging.getLogger(__name__)


class IdentityResolver:
    def __init__(self, store: CredentialStore, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._store = store
        self._clock = clock

    def resolve(self, email: str, name: str | None = None) -> User:
        """Find the user for ``email`` or create it exactly once.

        The name is only used when the user is created; returning users keep
        whatever name they registered with.
        """
        email = normalize_email(email)
        existing = self._store.get_user_by_email(email)
        if existing is not None:
            return existing

        user = User(id=str(uuid.uuid4()), email=email, name=(name or "").strip(), created_at=self._clock())
        try:
            created = self._store.insert_user(user)
        except DuplicateKeyError:
            # lost a race with a concurrent first login for the same email
            winner = self._store.get_user_by_email(email)
            if winner is None:
                raise
            return winner

        logger.info("Registered new user %s for %s", created.id, mask_email(email))
        return created
