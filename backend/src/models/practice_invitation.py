"""
Practice Invitation model for token-based staff onboarding.

An invitation is addressed to one email, carries a single-use UUID token and
expires seven days after creation. Status moves pending -> accepted exactly
once; pending invitations may also become expired (sweep) or revoked (admin).
"""

from typing import Optional
from datetime import datetime
from sqlalchemy import String, TIMESTAMP, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from utils.datetime_utils import is_past


INVITATION_STATUS_PENDING = "pending"
INVITATION_STATUS_ACCEPTED = "accepted"
INVITATION_STATUS_EXPIRED = "expired"
INVITATION_STATUS_REVOKED = "revoked"


class PracticeInvitation(Base):
    """Invitation for a staff member to join a practice."""

    __tablename__ = "practice_invitations"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    practice_id: Mapped[int] = mapped_column(ForeignKey("practices.id", ondelete="CASCADE"))
    email: Mapped[str] = mapped_column(String(255))  # Lower-cased at creation
    role: Mapped[str] = mapped_column(String(50))
    department: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    invited_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    invitation_token: Mapped[str] = mapped_column(String(64), unique=True)
    expires_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=INVITATION_STATUS_PENDING)
    accepted_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    accepted_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    practice = relationship("Practice", back_populates="invitations")
    inviter = relationship("User", foreign_keys=[invited_by])

    __table_args__ = (
        Index('idx_practice_invitations_practice_id', 'practice_id'),
        Index('idx_practice_invitations_status_expires', 'status', 'expires_at'),
    )

    @property
    def is_expired(self) -> bool:
        return is_past(self.expires_at)

    @property
    def is_usable(self) -> bool:
        """Check if the invitation can still be accepted."""
        return self.status == INVITATION_STATUS_PENDING and not self.is_expired

    def __repr__(self) -> str:
        return f"<PracticeInvitation(id={self.id}, practice_id={self.practice_id}, email='{self.email}', status='{self.status}')>"
