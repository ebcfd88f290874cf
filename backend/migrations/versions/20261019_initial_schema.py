"""initial schema

Revision ID: sb0001initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the complete Stockbook schema:
- users / session_tokens: accounts and bearer sessions
- products / stock_movements: on-hand quantities and their history
- clients
- invoices, bills, purchase_orders and their item tables
- document_sequences: per-owner document numbering
- transactions: balance sheet entries
- user_settings: tax defaults, prefixes and payment terms
- change_events: polling cursor for the change feed
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'sb0001initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name, nullable=False):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable,
                     server_default=sa.text('CURRENT_TIMESTAMP'))


def _create_item_table(table, parent_table, parent_key):
    op.create_table(
        table,
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column(parent_key, sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint([parent_key], [f'{parent_table}.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity > 0', name=f'ck_{table}_quantity_positive'),
        sa.CheckConstraint('unit_price_cents >= 0', name=f'ck_{table}_unit_price_non_negative'),
        sqlite_autoincrement=True
    )
    op.create_index(f'ix_{table}_{parent_key}', table, [parent_key])
    op.create_index(f'ix_{table}_product_id', table, ['product_id'])


def _totals_constraints(table):
    return [
        sa.CheckConstraint('subtotal_cents >= 0', name=f'ck_{table}_subtotal_non_negative'),
        sa.CheckConstraint('tax_cents >= 0', name=f'ck_{table}_tax_non_negative'),
        sa.CheckConstraint('total_cents >= 0', name=f'ck_{table}_total_non_negative'),
    ]


def _totals_columns():
    return [
        sa.Column('subtotal_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tax_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tax_rate_bps', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
    ]


def upgrade():
    # ============================================================================
    # users / session_tokens
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('company_name', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp('created_at'),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        _timestamp('created_at'),
        _timestamp('last_used_at'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_is_revoked', 'session_tokens', ['is_revoked'])
    op.create_index('ix_session_tokens_user_active', 'session_tokens', ['user_id', 'is_revoked'])

    # ============================================================================
    # products / stock_movements
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=True),
        sa.Column('category', sa.String(length=128), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('purchase_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sale_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('low_stock_threshold', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.ForeignKeyConstraint(['owner_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('owner_user_id', 'sku', name='uq_products_owner_sku'),
        sa.CheckConstraint('quantity >= 0', name='ck_products_quantity_non_negative'),
        sa.CheckConstraint('purchase_price_cents >= 0', name='ck_products_purchase_price_non_negative'),
        sa.CheckConstraint('sale_price_cents >= 0', name='ck_products_sale_price_non_negative'),
        sa.CheckConstraint('low_stock_threshold >= 0', name='ck_products_low_stock_non_negative'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_owner_user_id', 'products', ['owner_user_id'])
    op.create_index('ix_products_category', 'products', ['category'])
    op.create_index('ix_products_owner_name', 'products', ['owner_user_id', 'name'])

    op.create_table(
        'stock_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_user_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity_delta', sa.Integer(), nullable=False),
        sa.Column('quantity_after', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=32), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=True),
        sa.Column('document_id', sa.Integer(), nullable=True),
        _timestamp('occurred_at'),
        sa.ForeignKeyConstraint(['owner_user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stock_movements_owner_user_id', 'stock_movements', ['owner_user_id'])
    op.create_index('ix_stock_movements_reason', 'stock_movements', ['reason'])
    op.create_index('ix_stock_movements_product_occurred', 'stock_movements', ['product_id', 'occurred_at'])
    op.create_index('ix_stock_movements_document', 'stock_movements', ['document_type', 'document_id'])

    # ============================================================================
    # clients
    # ============================================================================
    op.create_table(
        'clients',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.ForeignKeyConstraint(['owner_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_clients_owner_user_id', 'clients', ['owner_user_id'])
    op.create_index('ix_clients_owner_name', 'clients', ['owner_user_id', 'name'])

    # ============================================================================
    # invoices / bills / purchase_orders
    # ============================================================================
    op.create_table(
        'invoices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_user_id', sa.Integer(), nullable=False),
        sa.Column('client_id', sa.Integer(), nullable=True),
        sa.Column('document_number', sa.String(length=64), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('customer_email', sa.String(length=255), nullable=True),
        sa.Column('issue_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='draft'),
        *_totals_columns(),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['owner_user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('owner_user_id', 'document_number', name='uq_invoices_owner_docnum'),
        *_totals_constraints('invoices'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_invoices_owner_user_id', 'invoices', ['owner_user_id'])
    op.create_index('ix_invoices_client_id', 'invoices', ['client_id'])
    op.create_index('ix_invoices_status', 'invoices', ['status'])
    op.create_index('ix_invoices_owner_status_issue', 'invoices', ['owner_user_id', 'status', 'issue_date'])
    _create_item_table('invoice_items', 'invoices', 'invoice_id')

    op.create_table(
        'bills',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_user_id', sa.Integer(), nullable=False),
        sa.Column('client_id', sa.Integer(), nullable=True),
        sa.Column('document_number', sa.String(length=64), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('customer_email', sa.String(length=255), nullable=True),
        sa.Column('bill_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        *_totals_columns(),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['owner_user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('owner_user_id', 'document_number', name='uq_bills_owner_docnum'),
        *_totals_constraints('bills'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_bills_owner_user_id', 'bills', ['owner_user_id'])
    op.create_index('ix_bills_client_id', 'bills', ['client_id'])
    op.create_index('ix_bills_status', 'bills', ['status'])
    op.create_index('ix_bills_owner_status_date', 'bills', ['owner_user_id', 'status', 'bill_date'])
    _create_item_table('bill_items', 'bills', 'bill_id')

    op.create_table(
        'purchase_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_user_id', sa.Integer(), nullable=False),
        sa.Column('client_id', sa.Integer(), nullable=True),
        sa.Column('document_number', sa.String(length=64), nullable=False),
        sa.Column('supplier_name', sa.String(length=255), nullable=False),
        sa.Column('supplier_email', sa.String(length=255), nullable=True),
        sa.Column('order_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        *_totals_columns(),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['owner_user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('owner_user_id', 'document_number', name='uq_purchase_orders_owner_docnum'),
        *_totals_constraints('purchase_orders'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_purchase_orders_owner_user_id', 'purchase_orders', ['owner_user_id'])
    op.create_index('ix_purchase_orders_client_id', 'purchase_orders', ['client_id'])
    op.create_index('ix_purchase_orders_status', 'purchase_orders', ['status'])
    op.create_index('ix_purchase_orders_owner_status_date', 'purchase_orders',
                    ['owner_user_id', 'status', 'order_date'])
    _create_item_table('purchase_order_items', 'purchase_orders', 'purchase_order_id')

    op.create_table(
        'document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_user_id', sa.Integer(), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        _timestamp('updated_at'),
        sa.ForeignKeyConstraint(['owner_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('owner_user_id', 'document_type', name='uq_doc_sequences_owner_type'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_document_sequences_owner_user_id', 'document_sequences', ['owner_user_id'])
    op.create_index('ix_document_sequences_document_type', 'document_sequences', ['document_type'])

    # ============================================================================
    # transactions / user_settings / change_events
    # ============================================================================
    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_user_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('category', sa.String(length=128), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('transaction_date', sa.Date(), nullable=False),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['owner_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('amount_cents >= 0', name='ck_transactions_amount_non_negative'),
        sa.CheckConstraint("type IN ('income', 'expense')", name='ck_transactions_type'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_transactions_owner_user_id', 'transactions', ['owner_user_id'])
    op.create_index('ix_transactions_owner_date', 'transactions', ['owner_user_id', 'transaction_date'])

    op.create_table(
        'user_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_user_id', sa.Integer(), nullable=False),
        sa.Column('currency_code', sa.String(length=8), nullable=False, server_default='INR'),
        sa.Column('currency_symbol', sa.String(length=8), nullable=False, server_default='₹'),
        sa.Column('default_tax_rate_bps', sa.Integer(), nullable=False, server_default='1800'),
        sa.Column('tax_name', sa.String(length=32), nullable=False, server_default='GST'),
        sa.Column('tax_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('invoice_prefix', sa.String(length=16), nullable=False, server_default='INV-'),
        sa.Column('bill_prefix', sa.String(length=16), nullable=False, server_default='BILL-'),
        sa.Column('purchase_order_prefix', sa.String(length=16), nullable=False, server_default='PO-'),
        sa.Column('default_payment_terms', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('low_stock_alerts', sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.ForeignKeyConstraint(['owner_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('owner_user_id'),
        sa.CheckConstraint('default_tax_rate_bps >= 0 AND default_tax_rate_bps <= 10000',
                           name='ck_settings_tax_rate_range'),
        sa.CheckConstraint('default_payment_terms >= 0', name='ck_settings_payment_terms'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'change_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('owner_user_id', sa.Integer(), nullable=False),
        sa.Column('relation', sa.String(length=64), nullable=False),
        sa.Column('event', sa.String(length=8), nullable=False),
        sa.Column('row_id', sa.Integer(), nullable=False),
        _timestamp('occurred_at'),
        sa.ForeignKeyConstraint(['owner_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_change_events_owner_user_id', 'change_events', ['owner_user_id'])
    op.create_index('ix_change_events_owner_relation', 'change_events', ['owner_user_id', 'relation', 'id'])


def downgrade():
    op.drop_table('change_events')
    op.drop_table('user_settings')
    op.drop_table('transactions')
    op.drop_table('document_sequences')
    op.drop_table('purchase_order_items')
    op.drop_table('purchase_orders')
    op.drop_table('bill_items')
    op.drop_table('bills')
    op.drop_table('invoice_items')
    op.drop_table('invoices')
    op.drop_table('clients')
    op.drop_table('stock_movements')
    op.drop_table('products')
    op.drop_table('session_tokens')
    op.drop_table('users')
