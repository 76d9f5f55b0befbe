"""create_reporting_schema

Revision ID: a1c2e3f4b5d6
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1c2e3f4b5d6'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _money(name: str, nullable: bool = False, default: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.Numeric(precision=20, scale=4),
        nullable=nullable,
        server_default='0' if default else None,
    )


def upgrade() -> None:
    """Create store, BIR, sales, shift, catalog, user and audit tables."""
    op.create_table(
        'stores',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('owner_name', sa.String(length=255), nullable=True),
        sa.Column('business_name', sa.String(length=255), nullable=True),
        sa.Column('tin', sa.String(length=50), nullable=True),
        sa.Column('machine_serial_number', sa.String(length=100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'bir_store_config',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('store_id', sa.Uuid(), nullable=False),
        sa.Column('business_name', sa.String(length=255), nullable=True),
        sa.Column('business_address', sa.Text(), nullable=True),
        sa.Column('taxpayer_name', sa.String(length=255), nullable=True),
        sa.Column('tin', sa.String(length=50), nullable=True),
        sa.Column('machine_identification_number', sa.String(length=100), nullable=True),
        sa.Column('machine_serial_number', sa.String(length=100), nullable=True),
        sa.Column('pos_version', sa.String(length=50), nullable=True),
        sa.Column('permit_number', sa.String(length=100), nullable=True),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id'),
    )

    op.create_table(
        'bir_cumulative_sales',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('store_id', sa.Uuid(), nullable=False),
        _money('grand_total_sales', default=True),
        _money('grand_total_net_sales', default=True),
        _money('grand_total_vat', default=True),
        sa.Column('last_reading_number', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('reset_counter', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store_id'),
    )

    op.create_table(
        'bir_z_readings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('store_id', sa.Uuid(), nullable=False),
        sa.Column('business_date', sa.Date(), nullable=False),
        sa.Column('terminal_id', sa.String(length=100), nullable=False),
        sa.Column('reading_number', sa.Integer(), nullable=False),
        _money('gross_sales'),
        _money('net_sales'),
        _money('cash_variance'),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('generated_by', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'store_id', 'business_date', 'terminal_id', name='uq_z_reading_store_day_terminal'
        ),
    )
    op.create_index('ix_z_readings_store_date', 'bir_z_readings', ['store_id', 'business_date'])

    op.create_table(
        'shifts',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('store_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
        _money('starting_cash', default=True),
        _money('ending_cash', nullable=True),
        sa.Column('start_photo', sa.Text(), nullable=True),
        sa.Column('end_photo', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_shifts_store', 'shifts', ['store_id'])
    op.create_index('ix_shifts_user', 'shifts', ['user_id'])
    op.create_index('ix_shifts_status', 'shifts', ['status'])
    op.create_index('ix_shifts_start_time', 'shifts', ['start_time'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('store_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('shift_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('receipt_number', sa.String(length=100), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='completed'),
        sa.Column('void_reason', sa.Text(), nullable=True),
        _money('subtotal', default=True),
        _money('tax', default=True),
        _money('discount', default=True),
        sa.Column('discount_type', sa.String(length=30), nullable=True),
        _money('total', default=True),
        sa.Column('payment_method', sa.String(length=30), nullable=False, server_default='cash'),
        sa.Column('items', sa.JSON(), nullable=False),
        sa.Column('order_type', sa.String(length=30), nullable=True),
        sa.Column('delivery_platform', sa.String(length=50), nullable=True),
        _money('vat_sales', nullable=True),
        _money('vat_exempt_sales', nullable=True),
        _money('zero_rated_sales', nullable=True),
        _money('senior_citizen_discount', nullable=True),
        _money('pwd_discount', nullable=True),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['shift_id'], ['shifts.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_transactions_store_created', 'transactions', ['store_id', 'created_at'])
    op.create_index('ix_transactions_status', 'transactions', ['status'])
    op.create_index('ix_transactions_user', 'transactions', ['user_id'])
    op.create_index('ix_transactions_receipt', 'transactions', ['receipt_number'])

    op.create_table(
        'categories',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'products',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('store_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category_id', sa.Uuid(), nullable=True),
        _money('cost', default=True),
        _money('price'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_products_store', 'products', ['store_id'])

    op.create_table(
        'inventory_stock',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('store_id', sa.Uuid(), nullable=False),
        sa.Column('item', sa.String(length=255), nullable=False),
        sa.Column('unit', sa.String(length=50), nullable=True),
        sa.Column('stock_quantity', sa.Numeric(precision=20, scale=4), nullable=False, server_default='0'),
        sa.Column('minimum_threshold', sa.Numeric(precision=20, scale=4), nullable=True),
        _money('cost', nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_inventory_stock_store', 'inventory_stock', ['store_id'])

    op.create_table(
        'app_users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('first_name', sa.String(length=150), nullable=True),
        sa.Column('last_name', sa.String(length=150), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )

    op.create_table(
        'cashiers',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('store_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('table_name', sa.String(length=100), nullable=False),
        sa.Column('record_id', sa.String(length=255), nullable=False),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('changed_by', sa.Uuid(), nullable=True),
        sa.Column('new_values', sa.JSON(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_table_record', 'audit_logs', ['table_name', 'record_id'])
    op.create_index('ix_audit_created_at', 'audit_logs', ['created_at'])
    op.create_index('ix_audit_action', 'audit_logs', ['action'])


def downgrade() -> None:
    """Drop every reporting table."""
    op.drop_index('ix_audit_action', table_name='audit_logs')
    op.drop_index('ix_audit_created_at', table_name='audit_logs')
    op.drop_index('ix_audit_table_record', table_name='audit_logs')
    op.drop_table('audit_logs')
    op.drop_table('cashiers')
    op.drop_table('app_users')
    op.drop_index('ix_inventory_stock_store', table_name='inventory_stock')
    op.drop_table('inventory_stock')
    op.drop_index('ix_products_store', table_name='products')
    op.drop_table('products')
    op.drop_table('categories')
    op.drop_index('ix_transactions_receipt', table_name='transactions')
    op.drop_index('ix_transactions_user', table_name='transactions')
    op.drop_index('ix_transactions_status', table_name='transactions')
    op.drop_index('ix_transactions_store_created', table_name='transactions')
    op.drop_table('transactions')
    op.drop_index('ix_shifts_start_time', table_name='shifts')
    op.drop_index('ix_shifts_status', table_name='shifts')
    op.drop_index('ix_shifts_user', table_name='shifts')
    op.drop_index('ix_shifts_store', table_name='shifts')
    op.drop_table('shifts')
    op.drop_index('ix_z_readings_store_date', table_name='bir_z_readings')
    op.drop_table('bir_z_readings')
    op.drop_table('bir_cumulative_sales')
    op.drop_table('bir_store_config')
    op.drop_table('stores')
