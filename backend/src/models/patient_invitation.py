"""
Patient Invitation and Patient Assignment models.

Staff invite patients to a practice by email. Accepting the invitation
creates (or reactivates) the patient's assignment to that practice.
"""

from typing import Optional
from datetime import datetime
from sqlalchemy import String, TIMESTAMP, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from models.practice_invitation import INVITATION_STATUS_PENDING
from utils.datetime_utils import is_past


class PatientInvitation(Base):
    """Invitation for a patient to join a practice."""

    __tablename__ = "patient_invitations"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    practice_id: Mapped[int] = mapped_column(ForeignKey("practices.id", ondelete="CASCADE"))
    email: Mapped[str] = mapped_column(String(255))
    invited_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    invitation_token: Mapped[str] = mapped_column(String(64), unique=True)
    expires_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=INVITATION_STATUS_PENDING)
    accepted_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    accepted_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    practice = relationship("Practice")

    __table_args__ = (
        Index('idx_patient_invitations_practice_id', 'practice_id'),
        Index('idx_patient_invitations_status_expires', 'status', 'expires_at'),
    )

    @property
    def is_expired(self) -> bool:
        return is_past(self.expires_at)

    @property
    def is_usable(self) -> bool:
        return self.status == INVITATION_STATUS_PENDING and not self.is_expired

    def __repr__(self) -> str:
        return f"<PatientInvitation(id={self.id}, practice_id={self.practice_id}, status='{self.status}')>"


class PatientAssignment(Base):
    """A patient's association with a practice."""

    __tablename__ = "patient_assignments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    patient_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    practice_id: Mapped[int] = mapped_column(ForeignKey("practices.id", ondelete="CASCADE"))
    status: Mapped[str] = mapped_column(String(20), default="active")  # active, inactive
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    patient = relationship("User")
    practice = relationship("Practice")

    __table_args__ = (
        UniqueConstraint('patient_id', 'practice_id', name='uq_patient_assignment'),
    )

    def __repr__(self) -> str:
        return f"<PatientAssignment(patient_id={self.patient_id}, practice_id={self.practice_id}, status='{self.status}')>"
