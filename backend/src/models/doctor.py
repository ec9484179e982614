"""
Doctor profile model.

One profile per doctor account. ``availability_status`` is the value
mirrored in realtime to viewers of the doctor.
"""

from typing import Any, Dict, Optional
from datetime import datetime
from sqlalchemy import String, TIMESTAMP, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import DOCTOR_STATUS_ACTIVE
from core.database import Base


class Doctor(Base):
    """Professional details and availability for a doctor account."""

    __tablename__ = "doctors"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), unique=True)
    specialty: Mapped[str] = mapped_column(String(100))
    license_number: Mapped[str] = mapped_column(String(50))
    availability_status: Mapped[str] = mapped_column(String(20), default=DOCTOR_STATUS_ACTIVE)  # active, away
    working_hours: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    user = relationship("User", back_populates="doctor_profile")

    def __repr__(self) -> str:
        return f"<Doctor(id={self.id}, user_id={self.user_id}, availability_status='{self.availability_status}')>"
