from __future__ import annotations

from datetime import datetime
from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from app.database import Base


class OtpChallenge(Base):
    __tablename__ = "otp_challenges"

    # one live challenge per email; a new request overwrites the row
    email: Mapped[str] = mapped_column(String(255), primary_key=True)

    # HMAC of the code, never the code itself
    code_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # display name given with the code request, applied if this login creates the user
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
