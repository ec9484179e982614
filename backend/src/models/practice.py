"""
Practice model.

A practice is the organization a set of staff members belong to. Practices
are created during doctor onboarding and are never hard-deleted.
"""

from typing import Optional
from datetime import datetime
from sqlalchemy import String, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class Practice(Base):
    """Medical practice with contact details."""

    __tablename__ = "practices"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(200))
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    staff = relationship("Staff", back_populates="practice")
    invitations = relationship("PracticeInvitation", back_populates="practice")
    join_requests = relationship("PracticeJoinRequest", back_populates="practice")

    def __repr__(self) -> str:
        return f"<Practice(id={self.id}, name='{self.name}')>"
