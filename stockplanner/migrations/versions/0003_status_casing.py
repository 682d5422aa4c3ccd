"""Normalise purchase order status to lowercase draft/open/received

Revision ID: 0003
Revises: 0002
Create Date: 2026-10-18 09:10:00.000000

"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '0003'
down_revision: Union[str, None] = '0002'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("UPDATE purchase_orders SET status = lower(trim(status))")
    # rows with no status at all are treated as confirmed orders
    op.execute("UPDATE purchase_orders SET status = 'open' WHERE status IS NULL")


def downgrade() -> None:
    # original casing is not recoverable
    pass
