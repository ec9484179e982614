"""
Unit tests for input validators and datetime helpers.
"""

from datetime import datetime, timedelta, timezone

import pytest

from utils.datetime_utils import ensure_utc, is_past, utc_now
from utils.validators import (
    normalize_email, normalize_email_optional, optional_text, require_text, validate_phone_optional,
)


class TestEmailValidation:

    def test_normalizes_case_and_whitespace(self):
        assert normalize_email("  Jane.Doe@Example.COM ") == "jane.doe@example.com"

    @pytest.mark.parametrize("value", ["", "   ", "no-at-sign", "a@b", "two words@example.com"])
    def test_rejects_invalid(self, value):
        with pytest.raises(ValueError):
            normalize_email(value)

    def test_rejects_too_long(self):
        with pytest.raises(ValueError, match="less than 100"):
            normalize_email("a" * 95 + "@example.com", max_length=100)

    def test_optional_blank_becomes_none(self):
        assert normalize_email_optional("  ") is None
        assert normalize_email_optional(None) is None


class TestPhoneValidation:

    @pytest.mark.parametrize("value", ["+1 (555) 010-2000", "5550102000"])
    def test_accepts_common_formats(self, value):
        assert validate_phone_optional(value) == value

    def test_rejects_letters(self):
        with pytest.raises(ValueError, match="Invalid phone"):
            validate_phone_optional("555-CALL-NOW")

    def test_blank_becomes_none(self):
        assert validate_phone_optional("") is None


class TestTextValidation:

    def test_require_text_trims(self):
        assert require_text("  Cardiology ", "Specialty", 100) == "Cardiology"

    def test_require_text_rejects_blank(self):
        with pytest.raises(ValueError, match="Specialty is required"):
            require_text("   ", "Specialty", 100)

    def test_optional_text_length(self):
        with pytest.raises(ValueError):
            optional_text("x" * 101, "Department", 100)
        assert optional_text("", "Department", 100) is None


class TestDatetimeUtils:

    def test_ensure_utc_attaches_zone_to_naive(self):
        naive = datetime(2026, 1, 1, 12, 0)
        assert ensure_utc(naive) == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_ensure_utc_converts_other_zones(self):
        plus_two = datetime(2026, 1, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
        assert ensure_utc(plus_two) == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_is_past(self):
        assert is_past(utc_now() - timedelta(seconds=1))
        assert not is_past(utc_now() + timedelta(days=7))
        # Naive values read back from SQLite are treated as UTC
        assert is_past((utc_now() - timedelta(minutes=1)).replace(tzinfo=None))

    def test_is_past_rejects_missing_datetime(self):
        with pytest.raises(ValueError):
            is_past(None)  # type: ignore[arg-type]
