"""
Input validation utilities.

Provides centralized email, phone and free-text validation so request
models across the API apply the same rules.
"""

import re
from typing import Optional


EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
PHONE_PATTERN = re.compile(r'^[\d\s\-+()]*$')


def normalize_email(email: str, max_length: int = 255) -> str:
    """
    Trim, lower-case and validate an email address.

    Args:
        email: Raw email input

    Returns:
        Normalized email address

    Raises:
        ValueError: If the email is empty, too long or malformed
    """
    if not email or not email.strip():
        raise ValueError('Email is required')

    normalized = email.strip().lower()
    if len(normalized) > max_length:
        raise ValueError(f'Email must be less than {max_length} characters')
    if not EMAIL_PATTERN.match(normalized):
        raise ValueError('Invalid email address')
    return normalized


def normalize_email_optional(email: Optional[str], max_length: int = 255) -> Optional[str]:
    """Validate an optional email field; empty strings become None."""
    if email is None or not email.strip():
        return None
    return normalize_email(email, max_length=max_length)


def validate_phone_optional(phone: Optional[str], max_length: int = 20) -> Optional[str]:
    """
    Validate an optional phone number.

    Digits, spaces, dashes, plus signs and parentheses are accepted.
    Empty strings become None.
    """
    if phone is None or not phone.strip():
        return None

    phone = phone.strip()
    if len(phone) > max_length:
        raise ValueError(f'Phone must be less than {max_length} characters')
    if not PHONE_PATTERN.match(phone):
        raise ValueError('Invalid phone number format')
    return phone


def require_text(value: str, field_name: str, max_length: int) -> str:
    """Trim a required text field and enforce its length bounds."""
    value = (value or "").strip()
    if not value:
        raise ValueError(f'{field_name} is required')
    if len(value) > max_length:
        raise ValueError(f'{field_name} must be less than {max_length} characters')
    return value


def optional_text(value: Optional[str], field_name: str, max_length: int) -> Optional[str]:
    """Trim an optional text field; blank values become None."""
    if value is None or not value.strip():
        return None
    value = value.strip()
    if len(value) > max_length:
        raise ValueError(f'{field_name} must be less than {max_length} characters')
    return value
