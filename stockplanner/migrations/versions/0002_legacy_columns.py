"""Add columns that products and purchase_orders lacked in earlier releases

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-18 09:05:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0002'
down_revision: Union[str, None] = '0001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

LEGACY_COLUMNS = {
    'products': [
        ('lead_time_days', sa.Integer()),
        ('image_url', sa.String(length=500)),
        ('supplier_id', sa.Integer()),
    ],
    'purchase_orders': [
        ('supplier_id', sa.Integer()),
        ('product_id', sa.Integer()),
        ('quantity', sa.Integer()),
        ('expected_date', sa.Date()),
        ('received_at', sa.DateTime()),
    ],
}

# (table, column) -> referenced table, for dialects that can ALTER in a constraint
LEGACY_FOREIGN_KEYS = {
    ('products', 'supplier_id'): 'suppliers',
    ('purchase_orders', 'supplier_id'): 'suppliers',
    ('purchase_orders', 'product_id'): 'products',
}


def upgrade() -> None:
    bind = op.get_bind()
    for table, columns in LEGACY_COLUMNS.items():
        existing = {c['name'] for c in sa.inspect(bind).get_columns(table)}
        for name, type_ in columns:
            if name in existing:
                continue
            op.add_column(table, sa.Column(name, type_, nullable=True))
            referred = LEGACY_FOREIGN_KEYS.get((table, name))
            if referred and bind.dialect.name != 'sqlite':
                op.create_foreign_key(f'fk_{table}_{name}', table, referred, [name], ['id'])


def downgrade() -> None:
    # from 0001 on these columns are part of the base tables
    pass
