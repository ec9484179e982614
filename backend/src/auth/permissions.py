# pyright: reportMissingTypeStubs=false
"""
Practice-scoped permission dependencies.

Each factory returns a dependency that reads ``practice_id`` from the path
and checks the caller's active staff row in that practice. System admins
pass every check.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from auth.dependencies import UserContext, get_current_user
from core.database import get_db
from services.practice_service import PracticeService


def require_practice_member():
    """
    Dependency that ensures the user is an active member of the practice.

    Returns:
        Dependency function that can be used with FastAPI Depends()
    """
    def dependency(
        practice_id: int,
        current_user: UserContext = Depends(get_current_user),
        db: Session = Depends(get_db)
    ) -> UserContext:
        PracticeService.get_practice(db, practice_id)
        PracticeService.ensure_member(db, current_user.user_id, practice_id, current_user.is_system_admin())
        return current_user

    return dependency


def require_staff_manager():
    """
    Dependency that ensures the user can manage staff in the practice
    (role admin or the manage_staff permission).

    Returns:
        Dependency function that can be used with FastAPI Depends()
    """
    def dependency(
        practice_id: int,
        current_user: UserContext = Depends(get_current_user),
        db: Session = Depends(get_db)
    ) -> UserContext:
        PracticeService.get_practice(db, practice_id)
        PracticeService.ensure_staff_manager(db, current_user.user_id, practice_id, current_user.is_system_admin())
        return current_user

    return dependency


def require_practice_manager():
    """
    Dependency that ensures the user can edit the practice
    (role admin or the manage_practice permission).

    Returns:
        Dependency function that can be used with FastAPI Depends()
    """
    def dependency(
        practice_id: int,
        current_user: UserContext = Depends(get_current_user),
        db: Session = Depends(get_db)
    ) -> UserContext:
        PracticeService.get_practice(db, practice_id)
        PracticeService.ensure_practice_manager(db, current_user.user_id, practice_id, current_user.is_system_admin())
        return current_user

    return dependency
