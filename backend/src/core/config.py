"""
Application configuration using python-dotenv.

This module loads environment variables from .env file into os.environ
for use throughout the application.
"""

import os
import pathlib
from dotenv import load_dotenv


# Don't load .env file during testing to ensure predictable test behavior
is_testing = os.getenv("PYTEST_VERSION") is not None

# Load .env file into os.environ (only outside of testing)
if not is_testing:
    possible_paths = [
        pathlib.Path(__file__).parent.parent.parent / ".env",  # backend/.env
        pathlib.Path(__file__).parent.parent.parent.parent / ".env",  # repository root
        pathlib.Path.cwd() / ".env",
    ]

    for env_path in possible_paths:
        if env_path.exists():
            load_dotenv(env_path)
            break


def _get_bool(name: str, default: bool) -> bool:
    """Read a boolean flag from the environment ("true"/"1"/"yes" are truthy)."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def get_database_url():
    """Get the database URL from environment."""
    return os.getenv(
        "DATABASE_URL",
        "postgresql://localhost/practice_portal_dev"
    )

DATABASE_URL = get_database_url()
SITE_URL = os.getenv("SITE_URL", "http://localhost:5173")

# Authentication
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
SYSTEM_ADMIN_EMAILS = [email.strip().lower() for email in os.getenv("SYSTEM_ADMIN_EMAILS", "").split(",") if email.strip()]
JWT_ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
JWT_REFRESH_TOKEN_EXPIRE_DAYS = int(os.getenv("JWT_REFRESH_TOKEN_EXPIRE_DAYS", "7"))

# Outbound email (Resend). Without an API key invitations are stored but not emailed.
RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
RESEND_API_URL = os.getenv("RESEND_API_URL", "https://api.resend.com/emails")
EMAIL_FROM = os.getenv("EMAIL_FROM", "Medical Practice <onboarding@resend.dev>")

# Hosted language model gateway (OpenAI-compatible chat completions)
MODEL_GATEWAY_URL = os.getenv("MODEL_GATEWAY_URL", "https://ai.gateway.lovable.dev/v1")
MODEL_GATEWAY_API_KEY = os.getenv("MODEL_GATEWAY_API_KEY", "")
MATCHING_MODEL = os.getenv("MATCHING_MODEL", "google/gemini-2.5-flash")
MODEL_GATEWAY_TIMEOUT_SECONDS = float(os.getenv("MODEL_GATEWAY_TIMEOUT_SECONDS", "60"))

# Invitations
INVITATION_EXPIRY_DAYS = int(os.getenv("INVITATION_EXPIRY_DAYS", "7"))
INVITATION_SWEEP_ENABLED = _get_bool("INVITATION_SWEEP_ENABLED", True)
INVITATION_SWEEP_INTERVAL_MINUTES = int(os.getenv("INVITATION_SWEEP_INTERVAL_MINUTES", "60"))
