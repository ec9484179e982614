# Package initialization
# Import all models to ensure relationships are properly established
from .user import User
from .refresh_token import RefreshToken
from .practice import Practice
from .staff import Staff
from .practice_invitation import PracticeInvitation
from .patient_invitation import PatientInvitation, PatientAssignment
from .practice_join_request import PracticeJoinRequest
from .doctor import Doctor
from .notification import Notification

__all__ = [
    "User",
    "RefreshToken",
    "Practice",
    "Staff",
    "PracticeInvitation",
    "PatientInvitation",
    "PatientAssignment",
    "PracticeJoinRequest",
    "Doctor",
    "Notification",
]
