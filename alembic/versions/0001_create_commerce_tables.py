"""create_commerce_tables

Revision ID: 0001_commerce
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_commerce'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')

quote_rule_method = sa.Enum(
    'QUANTITY_BREAK', 'MARKUP_PERCENT', 'FEE_FLAT', name='quote_rule_method_enum'
)
cart_status = sa.Enum('active', 'abandoned', 'converted', name='cart_status_enum')
order_status = sa.Enum(
    'pending', 'in_production', 'shipped', 'completed', 'cancelled',
    name='order_status_enum',
)
payment_status = sa.Enum(
    'PENDING', 'PAID', 'FAILED', 'REFUNDED', name='payment_status_enum'
)
payment_record_status = sa.Enum(
    'PENDING', 'PAID', 'FAILED', 'REFUNDED', name='payment_record_status_enum'
)
production_job_status = sa.Enum(
    'QUEUED', 'ARTWORK_REVIEW', 'IN_PRODUCTION', 'QUALITY_CHECK',
    'READY_TO_PACK', 'PACKED', 'COMPLETED',
    name='production_job_status_enum',
)
production_priority = sa.Enum(
    'LOW', 'NORMAL', 'HIGH', 'RUSH', name='production_priority_enum'
)
production_step_status = sa.Enum(
    'PENDING', 'IN_PROGRESS', 'COMPLETED', 'SKIPPED',
    name='production_step_status_enum',
)


def upgrade() -> None:
    """Upgrade schema - Create catalog, cart, order and production tables."""

    # Tenants and shoppers
    op.create_table(
        'stores',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), nullable=False),
        sa.Column('currency', sa.String(8), nullable=False),
        sa.Column('webhook_url', sa.String(1024), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug'),
    )
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('tax_exempt', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    # Catalog
    op.create_table(
        'products',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('store_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('base_price', sa.Numeric(12, 2), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_products_store_id', 'products', ['store_id'])

    op.create_table(
        'product_variants',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('sku', sa.String(100), nullable=False),
        sa.Column('size', sa.String(20), nullable=True),
        sa.Column('color', sa.String(50), nullable=True),
        sa.Column('supplier_cost', sa.Numeric(12, 2), nullable=True),
        sa.Column('weight_oz', sa.Numeric(8, 2), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sku'),
    )
    op.create_index('ix_product_variants_product_id', 'product_variants', ['product_id'])

    op.create_table(
        'vendor_product_variants',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('vendor_sku', sa.String(100), nullable=False),
        sa.Column('product_variant_id', sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(['product_variant_id'], ['product_variants.id']),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'designs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('store_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('vector_url', sa.String(1024), nullable=True),
        sa.Column('exported_image_url', sa.String(1024), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_designs_store_id', 'designs', ['store_id'])

    # Pricing and quoting configuration
    op.create_table(
        'pricing_rules',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('min_quantity', sa.Integer(), nullable=False),
        sa.Column('max_quantity', sa.Integer(), nullable=True),
        sa.Column('config', JSONType, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('min_quantity >= 1', name='pricing_rule_min_positive'),
        sa.CheckConstraint(
            'max_quantity IS NULL OR max_quantity >= min_quantity',
            name='pricing_rule_range_ordered',
        ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_pricing_rules_product_id', 'pricing_rules', ['product_id'])

    op.create_table(
        'shipping_rates',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('store_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('min_subtotal', sa.Numeric(12, 2), nullable=True),
        sa.Column('max_subtotal', sa.Numeric(12, 2), nullable=True),
        sa.Column('base_charge', sa.Numeric(12, 2), nullable=True),
        sa.Column('per_item_charge', sa.Numeric(12, 4), nullable=True),
        sa.Column('per_oz_charge', sa.Numeric(12, 4), nullable=True),
        sa.Column('rush_multiplier', sa.Numeric(6, 3), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_shipping_rates_store_id', 'shipping_rates', ['store_id'])

    op.create_table(
        'tax_rates',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('store_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('jurisdiction', sa.String(100), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('rate', sa.Numeric(8, 5), nullable=False),
        sa.Column('applies_shipping', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_tax_rates_store_id', 'tax_rates', ['store_id'])

    op.create_table(
        'quote_rules',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('store_id', sa.Uuid(), nullable=False),
        sa.Column('method', quote_rule_method, nullable=False),
        sa.Column('conditions', JSONType, nullable=False),
        sa.Column('effects', JSONType, nullable=False),
        sa.Column('priority', sa.Integer(), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_quote_rules_store_id', 'quote_rules', ['store_id'])

    # Carts
    op.create_table(
        'carts',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('store_id', sa.Uuid(), nullable=True),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('session_id', sa.String(255), nullable=True),
        sa.Column('status', cart_status, server_default='active', nullable=True),
        sa.Column('total', sa.Numeric(12, 2), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            'user_id IS NOT NULL OR session_id IS NOT NULL', name='cart_one_owner'
        ),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_carts_store_id', 'carts', ['store_id'])
    op.create_index('ix_carts_user_id', 'carts', ['user_id'])
    op.create_index('ix_carts_session_id', 'carts', ['session_id'])
    # At most one active cart per user, and per guest session
    op.create_index(
        'uq_carts_active_user',
        'carts',
        ['user_id'],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )
    op.create_index(
        'uq_carts_active_session',
        'carts',
        ['session_id'],
        unique=True,
        postgresql_where=sa.text("status = 'active' AND user_id IS NULL"),
        sqlite_where=sa.text("status = 'active' AND user_id IS NULL"),
    )

    op.create_table(
        'cart_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('cart_id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('variant_id', sa.Uuid(), nullable=False),
        sa.Column('design_id', sa.Uuid(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('mockup_url', sa.String(1024), nullable=True),
        sa.Column('decoration', JSONType, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('quantity > 0', name='positive_quantity'),
        sa.ForeignKeyConstraint(['cart_id'], ['carts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['variant_id'], ['product_variants.id']),
        sa.ForeignKeyConstraint(['design_id'], ['designs.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_cart_items_cart_id', 'cart_items', ['cart_id'])

    op.create_table(
        'pricing_snapshots',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('cart_item_id', sa.Uuid(), nullable=False),
        sa.Column('base_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('color_surcharge', sa.Numeric(12, 2), nullable=False),
        sa.Column('quantity_discount', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('breakdown', JSONType, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['cart_item_id'], ['cart_items.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('cart_item_id'),
    )

    # Orders and payments
    op.create_table(
        'orders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_number', sa.String(40), nullable=False),
        sa.Column('store_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('cart_id', sa.Uuid(), nullable=True),
        sa.Column('payment_intent_id', sa.String(255), nullable=True),
        sa.Column('customer_email', sa.String(255), nullable=True),
        sa.Column('customer_name', sa.String(255), nullable=True),
        sa.Column('shipping_address', JSONType, nullable=True),
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False),
        sa.Column('tax_amount', sa.Numeric(12, 2), server_default='0', nullable=True),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sa.String(8), nullable=False),
        sa.Column('status', order_status, server_default='pending', nullable=True),
        sa.Column('payment_status', payment_status, server_default='PENDING', nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['store_id'], ['stores.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['cart_id'], ['carts.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('cart_id'),
        sa.UniqueConstraint('payment_intent_id'),
    )
    op.create_index('ix_orders_order_number', 'orders', ['order_number'], unique=True)
    op.create_index('ix_orders_store_id', 'orders', ['store_id'])
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('variant_id', sa.Uuid(), nullable=False),
        sa.Column('design_id', sa.Uuid(), nullable=True),
        sa.Column('product_name', sa.String(255), nullable=False),
        sa.Column('variant_sku', sa.String(100), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('line_total', sa.Numeric(12, 2), nullable=False),
        sa.Column('pricing_breakdown', JSONType, nullable=True),
        sa.Column('mockup_url', sa.String(1024), nullable=True),
        sa.Column('export_assets', JSONType, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.ForeignKeyConstraint(['variant_id'], ['product_variants.id']),
        sa.ForeignKeyConstraint(['design_id'], ['designs.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])

    op.create_table(
        'payments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('transaction_id', sa.String(255), nullable=False),
        sa.Column('provider', sa.String(50), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sa.String(8), nullable=False),
        sa.Column('status', payment_record_status, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('transaction_id'),
    )
    op.create_index('ix_payments_order_id', 'payments', ['order_id'])

    # Production
    op.create_table(
        'production_jobs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('job_number', sa.String(40), nullable=False),
        sa.Column('status', production_job_status, nullable=True),
        sa.Column('priority', production_priority, nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id'),
        sa.UniqueConstraint('job_number'),
    )

    op.create_table(
        'production_steps',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('job_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(50), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('status', production_step_status, nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['job_id'], ['production_jobs.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_production_steps_job_id', 'production_steps', ['job_id'])

    op.create_table(
        'shipments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('job_id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('carrier', sa.String(50), nullable=True),
        sa.Column('service', sa.String(100), nullable=True),
        sa.Column('tracking_number', sa.String(100), nullable=False),
        sa.Column('tracking_url', sa.String(1024), nullable=True),
        sa.Column('label_url', sa.String(1024), nullable=True),
        sa.Column('status', sa.String(50), nullable=True),
        sa.Column('events', JSONType, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['job_id'], ['production_jobs.id']),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tracking_number'),
    )
    op.create_index('ix_shipments_job_id', 'shipments', ['job_id'])
    op.create_index('ix_shipments_order_id', 'shipments', ['order_id'])


def downgrade() -> None:
    """Downgrade schema - Drop every commerce table."""
    op.drop_table('shipments')
    op.drop_table('production_steps')
    op.drop_table('production_jobs')
    op.drop_table('payments')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('pricing_snapshots')
    op.drop_table('cart_items')
    op.drop_table('carts')
    op.drop_table('quote_rules')
    op.drop_table('tax_rates')
    op.drop_table('shipping_rates')
    op.drop_table('pricing_rules')
    op.drop_table('designs')
    op.drop_table('vendor_product_variants')
    op.drop_table('product_variants')
    op.drop_table('products')
    op.drop_table('users')
    op.drop_table('stores')

    bind = op.get_bind()
    for enum in (
        production_step_status,
        production_priority,
        production_job_status,
        payment_record_status,
        payment_status,
        order_status,
        cart_status,
        quote_rule_method,
    ):
        enum.drop(bind, checkfirst=True)
