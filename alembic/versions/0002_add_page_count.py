"""add page_count to events

Revision ID: 0002_add_page_count
Revises: 0001_create_events
Create Date: 2024-12-02 21:47:09.530118

"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '0002_add_page_count'
down_revision: Union[str, None] = '0001_create_events'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # existing rows keep NULL; aggregates read NULL as 0
    op.execute("ALTER TABLE events ADD COLUMN IF NOT EXISTS page_count INTEGER DEFAULT 0")


def downgrade() -> None:
    raise NotImplementedError("events migrations are forward-only")
