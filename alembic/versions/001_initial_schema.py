"""initial schema - applications, sections, number pool, OTP, audit, reference tables

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

For databases created by startup.py: run `alembic stamp 001_initial`.
For NEW databases: run `alembic upgrade head`.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables from the SQLAlchemy models on the migration connection.

    checkfirst=True keeps it safe on a database that already has some tables.
    """
    from smartify.models import Base

    Base.metadata.create_all(bind=op.get_bind(), checkfirst=True)


def downgrade() -> None:
    """Drop all tables. DESTRUCTIVE, dev/test only."""
    from smartify.models import Base

    Base.metadata.drop_all(bind=op.get_bind())
