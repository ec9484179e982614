"""
Request schemas for the practice and doctor forms.

The same field rules apply wherever these details are submitted: practice
creation during onboarding, practice edits and doctor profile setup.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, field_validator

from utils.validators import normalize_email_optional, optional_text, require_text, validate_phone_optional


class PracticeDetails(BaseModel):
    """Practice form: name required, contact fields optional."""
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        return require_text(v, 'Practice name', 200)

    @field_validator('address')
    @classmethod
    def validate_address(cls, v: Optional[str]) -> Optional[str]:
        return optional_text(v, 'Address', 500)

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return validate_phone_optional(v)

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return normalize_email_optional(v, max_length=100)


class PracticeUpdate(PracticeDetails):
    """Partial practice update; omitted fields are left unchanged."""
    name: Optional[str] = None  # type: ignore[assignment]

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:  # type: ignore[override]
        if v is None:
            return None
        return require_text(v, 'Practice name', 200)


class DoctorDetails(BaseModel):
    """Doctor form: professional details."""
    specialty: str
    license_number: str

    @field_validator('specialty')
    @classmethod
    def validate_specialty(cls, v: str) -> str:
        return require_text(v, 'Specialty', 100)

    @field_validator('license_number')
    @classmethod
    def validate_license_number(cls, v: str) -> str:
        return require_text(v, 'License number', 50)


class DoctorProfileUpdate(BaseModel):
    """Partial doctor profile update."""
    specialty: Optional[str] = None
    license_number: Optional[str] = None
    working_hours: Optional[Dict[str, Any]] = None

    @field_validator('specialty')
    @classmethod
    def validate_specialty(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else require_text(v, 'Specialty', 100)

    @field_validator('license_number')
    @classmethod
    def validate_license_number(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else require_text(v, 'License number', 50)
