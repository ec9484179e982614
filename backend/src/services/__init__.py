"""
Services package for shared business logic.

This package contains service classes that encapsulate business logic
shared across multiple API endpoints.
"""

# Importing the change feed registers its session listeners
from .change_feed import change_feed, ChangeFeed, ChangeEvent
from .auth_service import AuthService
from .practice_service import PracticeService
from .invitation_service import InvitationService, PatientInvitationService
from .join_request_service import JoinRequestService
from .doctor_service import DoctorService
from .notification_service import NotificationService

__all__ = [
    "change_feed",
    "ChangeFeed",
    "ChangeEvent",
    "AuthService",
    "PracticeService",
    "InvitationService",
    "PatientInvitationService",
    "JoinRequestService",
    "DoctorService",
    "NotificationService",
]
