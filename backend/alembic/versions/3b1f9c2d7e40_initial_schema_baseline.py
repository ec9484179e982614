"""initial_schema_baseline

Revision ID: 3b1f9c2d7e40
Revises:
Create Date: 2026-10-12 09:30:00.000000

Baseline migration creating every table from the current model definitions:
users, refresh tokens, practices, staff, staff and patient invitations,
patient assignments, join requests, doctor profiles and notifications.
"""
from typing import Sequence, Union

from alembic import op

# Import all models to ensure they're registered with Base.metadata
from core.database import Base
import models  # noqa: F401


# revision identifiers, used by Alembic.
revision: str = '3b1f9c2d7e40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create all tables, indexes and constraints as the models define them.

    This includes the partial unique index that allows at most one pending
    join request per user and practice.
    """
    Base.metadata.create_all(bind=op.get_bind())


def downgrade() -> None:
    Base.metadata.drop_all(bind=op.get_bind())
