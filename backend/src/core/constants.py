"""Application constants and configuration values."""

from core.config import SITE_URL

# Database field lengths
MAX_STRING_LENGTH = 255

# Database connection settings
DB_POOL_RECYCLE_SECONDS = 300  # 5 minutes

# CORS origins for development and production
_CORS_ORIGINS_RAW = [
    "http://localhost:5173",      # Vite dev server
    SITE_URL,
]

# Filter out empty strings and duplicates to avoid CORS errors
CORS_ORIGINS = list(dict.fromkeys(origin for origin in _CORS_ORIGINS_RAW if origin and origin.strip()))

# Portal-wide account roles
USER_ROLE_PATIENT = "patient"
USER_ROLE_DOCTOR = "doctor"
USER_ROLE_ADMIN = "admin"
SIGNUP_ROLES = {USER_ROLE_PATIENT, USER_ROLE_DOCTOR}
MIN_PASSWORD_LENGTH = 8

# Practice-scoped staff roles
INVITABLE_STAFF_ROLES = ["admin", "doctor", "nurse", "staff"]
JOIN_REQUEST_ROLES = ["doctor", "nurse", "anesthesiologist", "physician_assistant", "receptionist", "admin"]
STAFF_ROLES = sorted(set(INVITABLE_STAFF_ROLES) | set(JOIN_REQUEST_ROLES))

# Staff permissions
PERMISSION_VIEW_PATIENTS = "view_patients"
PERMISSION_MANAGE_PATIENTS = "manage_patients"
PERMISSION_MANAGE_STAFF = "manage_staff"
PERMISSION_SCHEDULE_APPOINTMENTS = "schedule_appointments"
PERMISSION_MANAGE_PRACTICE = "manage_practice"
OWNER_PERMISSIONS = [
    PERMISSION_VIEW_PATIENTS,
    PERMISSION_MANAGE_PATIENTS,
    PERMISSION_MANAGE_STAFF,
    PERMISSION_SCHEDULE_APPOINTMENTS,
    PERMISSION_MANAGE_PRACTICE,
]
OWNER_DEPARTMENT = "Administration"

# Staff record provenance
STAFF_SOURCE_OWNER = "owner"
STAFF_SOURCE_INVITATION = "invitation"
STAFF_SOURCE_JOIN_REQUEST = "join_request"

# Doctor availability
DOCTOR_STATUS_ACTIVE = "active"
DOCTOR_STATUS_AWAY = "away"

# Practice search
PRACTICE_SEARCH_LIMIT = 10

# Notification feed
NOTIFICATION_FEED_DEFAULT_LIMIT = 10
NOTIFICATION_FEED_MAX_LIMIT = 50

# Physician matching input limits
MATCH_CHIEF_CONCERN_MAX_LENGTH = 1000
MATCH_LOCATION_MAX_LENGTH = 200
MATCH_URGENCY_LEVELS = ["routine", "soon", "urgent"]
MATCH_TEMPERATURE = 0.7

# Join request message
JOIN_REQUEST_MESSAGE_MAX_LENGTH = 1000

# Invitation sweep
INVITATION_SWEEP_MAX_INSTANCES = 1  # Prevent overlapping sweep runs
