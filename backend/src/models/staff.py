"""
Staff model: a user's membership in a practice.

Rows are created by exactly one of three paths, recorded in ``source``:
practice creation (owner), invitation acceptance, or join-request approval.
Removing a member deactivates the row instead of deleting it.
"""

from typing import Optional
from datetime import date, datetime
from sqlalchemy import String, TIMESTAMP, Date, JSON, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import PERMISSION_MANAGE_PRACTICE, PERMISSION_MANAGE_STAFF
from core.database import Base


class Staff(Base):
    """Practice-scoped role and permissions for a user."""

    __tablename__ = "staff"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    practice_id: Mapped[int] = mapped_column(ForeignKey("practices.id", ondelete="CASCADE"))
    role: Mapped[str] = mapped_column(String(50))
    department: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    permissions: Mapped[list[str]] = mapped_column(JSON, default=list)
    status: Mapped[str] = mapped_column(String(20), default="active")  # active, inactive
    source: Mapped[str] = mapped_column(String(20))  # owner, invitation, join_request
    hire_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    user = relationship("User", back_populates="staff_memberships", foreign_keys=[user_id])
    practice = relationship("Practice", back_populates="staff")

    __table_args__ = (
        UniqueConstraint('user_id', 'practice_id', name='uq_staff_user_practice'),
        Index('idx_staff_practice_status', 'practice_id', 'status'),
    )

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def can_manage_staff(self) -> bool:
        """Admins and holders of the manage_staff permission manage membership."""
        return self.is_active and (self.role == "admin" or PERMISSION_MANAGE_STAFF in (self.permissions or []))

    @property
    def can_manage_practice(self) -> bool:
        return self.is_active and (self.role == "admin" or PERMISSION_MANAGE_PRACTICE in (self.permissions or []))

    def __repr__(self) -> str:
        return f"<Staff(id={self.id}, user_id={self.user_id}, practice_id={self.practice_id}, role='{self.role}', status='{self.status}')>"
