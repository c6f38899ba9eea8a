"""reject empty event types

Revision ID: 0004_type_not_empty
Revises: 0003_index_event_type
Create Date: 2025-02-06 16:40:12.872930

"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '0004_type_not_empty'
down_revision: Union[str, None] = '0003_index_event_type'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # NOT VALID: applies to new rows only, existing rows are left as they are
    op.execute("""
        DO $$
        BEGIN
            IF NOT EXISTS (SELECT 1 FROM pg_constraint WHERE conname = 'ck_events_type_not_empty') THEN
                ALTER TABLE events ADD CONSTRAINT ck_events_type_not_empty CHECK (type <> '') NOT VALID;
            END IF;
        END $$;
    """)


def downgrade() -> None:
    raise NotImplementedError("events migrations are forward-only")
