"""
Practice Join Request model.

A user asks to join a practice with a requested role. A partial unique index
allows at most one pending request per (user, practice); once a request is
reviewed the user may submit again.
"""

from typing import Optional
from datetime import datetime
from sqlalchemy import String, Text, TIMESTAMP, ForeignKey, Index, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


JOIN_REQUEST_STATUS_PENDING = "pending"
JOIN_REQUEST_STATUS_APPROVED = "approved"
JOIN_REQUEST_STATUS_REJECTED = "rejected"


class PracticeJoinRequest(Base):
    """Request from a user to join a practice."""

    __tablename__ = "practice_join_requests"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    practice_id: Mapped[int] = mapped_column(ForeignKey("practices.id", ondelete="CASCADE"))
    requested_role: Mapped[str] = mapped_column(String(50))
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=JOIN_REQUEST_STATUS_PENDING)
    reviewed_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    user = relationship("User", foreign_keys=[user_id])
    practice = relationship("Practice", back_populates="join_requests")

    __table_args__ = (
        Index(
            'uq_join_requests_pending_user_practice',
            'user_id',
            'practice_id',
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        Index('idx_join_requests_practice_status', 'practice_id', 'status'),
    )

    def __repr__(self) -> str:
        return f"<PracticeJoinRequest(id={self.id}, user_id={self.user_id}, practice_id={self.practice_id}, status='{self.status}')>"
