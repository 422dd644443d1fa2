"""Baseline migration - salon booking schema

Revision ID: 001
Revises:
Create Date: 2026-10-18 09:00:00.000000

Creates the status catalog, calendar, collaborator lookup and appointment
tables, including the per-staff exclusion constraint, and seeds the statuses.
The DDL is shared with Database._create_tables() so both paths stay identical.
"""
from typing import Sequence, Union

from alembic import op

from salon_booking.core.enums import STATUS_LABELS
from salon_booking.models.database import SCHEMA_STATEMENTS

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the baseline schema and seed the status catalog."""
    for statement in SCHEMA_STATEMENTS:
        op.execute(statement)

    for status, label in STATUS_LABELS.items():
        escaped = label.replace("'", "''")
        op.execute(
            "INSERT INTO appointment_statuses (name, label) "
            f"VALUES ('{status.value}', '{escaped}') ON CONFLICT (name) DO NOTHING"
        )


def downgrade() -> None:
    """Drop all tables in reverse order (respecting foreign key dependencies)."""
    op.execute("DROP TABLE IF EXISTS appointment_events CASCADE")
    op.execute("DROP TABLE IF EXISTS appointments CASCADE")
    op.execute("DROP TABLE IF EXISTS user_capabilities CASCADE")
    op.execute("DROP TABLE IF EXISTS services CASCADE")
    op.execute("DROP TABLE IF EXISTS staff_members CASCADE")
    op.execute("DROP TABLE IF EXISTS clients CASCADE")
    op.execute("DROP TABLE IF EXISTS calendar_windows CASCADE")
    op.execute("DROP TABLE IF EXISTS holidays CASCADE")
    op.execute("DROP TABLE IF EXISTS appointment_statuses CASCADE")
