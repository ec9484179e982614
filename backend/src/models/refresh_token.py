"""
Refresh Token model for JWT session management.

Tokens are stored hashed (bcrypt for verification, SHA-256 for lookup) and
rotated on every refresh.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, TIMESTAMP, Boolean, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from utils.datetime_utils import ensure_utc, utc_now


class RefreshToken(Base):
    """Secure refresh tokens for JWT session management."""

    __tablename__ = "refresh_tokens"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    token_hash: Mapped[str] = mapped_column(String(255), unique=True)  # bcrypt hashed
    token_hash_sha256: Mapped[str] = mapped_column(String(64), unique=True)  # SHA-256 hash for O(1) lookup
    expires_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    last_used_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    revoked: Mapped[bool] = mapped_column(Boolean, default=False)

    user = relationship("User", back_populates="refresh_tokens")

    __table_args__ = (
        Index('idx_refresh_tokens_user_id', 'user_id'),
        Index('idx_refresh_tokens_expires_at', 'expires_at'),
    )

    @property
    def is_valid(self) -> bool:
        """Check if refresh token is still valid."""
        expires_at = ensure_utc(self.expires_at)
        assert expires_at is not None
        return not self.revoked and expires_at > utc_now()

    def update_last_used(self) -> None:
        """Update the last used timestamp."""
        self.last_used_at = utc_now()

    def revoke(self) -> None:
        """Revoke this refresh token."""
        self.revoked = True

    def __repr__(self) -> str:
        return f"<RefreshToken(id={self.id}, user_id={self.user_id}, revoked={self.revoked})>"
