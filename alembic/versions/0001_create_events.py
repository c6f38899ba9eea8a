"""create events

Revision ID: 0001_create_events
Revises:
Create Date: 2024-09-14 18:02:41.311207

"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '0001_create_events'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # IF NOT EXISTS: databases bootstrapped by the old setup script already have it
    op.execute("""
        CREATE TABLE IF NOT EXISTS events (
            id INTEGER GENERATED ALWAYS AS IDENTITY PRIMARY KEY,
            type VARCHAR(50) NOT NULL,
            user_agent TEXT,
            referrer TEXT,
            page TEXT,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW() NOT NULL
        )
    """)


def downgrade() -> None:
    raise NotImplementedError("events migrations are forward-only")
