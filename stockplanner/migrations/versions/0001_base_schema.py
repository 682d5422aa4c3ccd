"""Base schema: suppliers, products, sales, purchase orders and their lines

Revision ID: 0001
Revises:
Create Date: 2026-10-18 09:00:00.000000

Tables that already exist (databases from earlier releases) are left
alone here; 0002 brings their columns up to date.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    existing = set(sa.inspect(op.get_bind()).get_table_names())

    if 'suppliers' not in existing:
        op.create_table(
            'suppliers',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=200), nullable=False),
            sa.Column('lead_time_days', sa.Integer(), server_default='30', nullable=False),
            sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
            sa.PrimaryKeyConstraint('id')
        )

    if 'products' not in existing:
        op.create_table(
            'products',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('sku', sa.String(length=64), nullable=False),
            sa.Column('name', sa.String(length=200), nullable=False),
            sa.Column('stock', sa.Integer(), server_default='0', nullable=False),
            sa.Column('reorder_point', sa.Integer(), server_default='0', nullable=False),
            sa.Column('lead_time_days', sa.Integer(), nullable=True),
            sa.Column('image_url', sa.String(length=500), nullable=True),
            sa.Column('supplier_id', sa.Integer(), nullable=True),
            sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
            sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id']),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_products_sku', 'products', ['sku'], unique=True)

    if 'sales' not in existing:
        op.create_table(
            'sales',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('product_id', sa.Integer(), nullable=False),
            sa.Column('quantity', sa.Integer(), nullable=False),
            sa.Column('sold_at', sa.Date(), server_default=sa.func.current_date(), nullable=False),
            sa.ForeignKeyConstraint(['product_id'], ['products.id']),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_sales_product_sold_at', 'sales', ['product_id', 'sold_at'])

    if 'purchase_orders' not in existing:
        op.create_table(
            'purchase_orders',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('status', sa.String(length=16), nullable=False),
            sa.Column('supplier_id', sa.Integer(), nullable=True),
            sa.Column('product_id', sa.Integer(), nullable=True),
            sa.Column('quantity', sa.Integer(), nullable=True),
            sa.Column('expected_date', sa.Date(), nullable=True),
            sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
            sa.Column('received_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id']),
            sa.ForeignKeyConstraint(['product_id'], ['products.id']),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_purchase_orders_status', 'purchase_orders', ['status'])

    if 'purchase_order_items' not in existing:
        op.create_table(
            'purchase_order_items',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('purchase_order_id', sa.Integer(), nullable=False),
            sa.Column('product_id', sa.Integer(), nullable=False),
            sa.Column('quantity', sa.Integer(), nullable=False),
            sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['product_id'], ['products.id']),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(
            'ix_purchase_order_items_purchase_order_id', 'purchase_order_items', ['purchase_order_id']
        )


def downgrade() -> None:
    op.drop_index('ix_purchase_order_items_purchase_order_id', table_name='purchase_order_items')
    op.drop_table('purchase_order_items')
    op.drop_index('ix_purchase_orders_status', table_name='purchase_orders')
    op.drop_table('purchase_orders')
    op.drop_index('ix_sales_product_sold_at', table_name='sales')
    op.drop_table('sales')
    op.drop_index('ix_products_sku', table_name='products')
    op.drop_table('products')
    op.drop_table('suppliers')
