"""index events.type

Revision ID: 0003_index_event_type
Revises: 0002_add_page_count
Create Date: 2025-01-11 09:15:52.004871

"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '0003_index_event_type'
down_revision: Union[str, None] = '0002_add_page_count'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # stats queries filter by type
    op.execute("CREATE INDEX IF NOT EXISTS ix_events_type ON events (type)")


def downgrade() -> None:
    raise NotImplementedError("events migrations are forward-only")
