"""initial storefront schema

Revision ID: 3c9e1f7a2b40
Revises: 
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c9e1f7a2b40'
down_revision = None
branch_labels = None
depends_on = None

admin_role = sa.Enum('SUPER_ADMIN', 'ADMIN', 'MANAGER', 'SUPPORT', name='adminrole')
order_status = sa.Enum('PENDING', 'CONFIRMED', 'SHIPPED', 'DELIVERED', 'CANCELLED', name='orderstatus')
user_type = sa.Enum('GUEST', 'CUSTOMER', 'ADMIN', name='usertype')
client_source = sa.Enum('WEB', 'MOBILE', name='clientsource')
entity_type = sa.Enum(
    'PRODUCT', 'ORDER', 'CUSTOMER', 'CATEGORY', 'CART', 'WISHLIST', 'SEARCH', 'AUTH', 'OTHER',
    name='entitytype'
)


def upgrade():
    op.create_table('customers',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_customers_email', 'customers', ['email'], unique=True)
    op.create_index('ix_customers_phone', 'customers', ['phone'], unique=True)
    
    op.create_table('admins',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('role', admin_role, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_admins_email', 'admins', ['email'], unique=True)
    
    op.create_table('categories',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_categories_slug', 'categories', ['slug'], unique=True)
    
    op.create_table('products',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category_id', sa.String(length=36), nullable=True),
        sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('stock_quantity', sa.Integer(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_products_name', 'products', ['name'], unique=False)
    op.create_index('ix_products_slug', 'products', ['slug'], unique=True)
    op.create_index('ix_products_category_id', 'products', ['category_id'], unique=False)
    
    op.create_table('cart_items',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('customer_id', sa.String(length=36), nullable=True),
        sa.Column('browser_id', sa.String(length=100), nullable=True),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('options', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_cart_items_customer_id', 'cart_items', ['customer_id'], unique=False)
    op.create_index('ix_cart_items_browser_id', 'cart_items', ['browser_id'], unique=False)
    
    op.create_table('orders',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('order_number', sa.String(length=50), nullable=False),
        sa.Column('customer_id', sa.String(length=36), nullable=True),
        sa.Column('status', order_status, nullable=False),
        sa.Column('subtotal', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('total_amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_orders_order_number', 'orders', ['order_number'], unique=True)
    op.create_index('ix_orders_customer_id', 'orders', ['customer_id'], unique=False)
    
    op.create_table('order_items',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('order_id', sa.String(length=36), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('total_price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'], unique=False)
    
    # Online user tracking: one row per browser, versioned for conditional updates
    op.create_table('online_users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('browser_id', sa.String(length=100), nullable=False),
        sa.Column('user_type', user_type, nullable=False),
        sa.Column('customer_id', sa.String(length=36), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=500), nullable=True),
        sa.Column('source', client_source, nullable=False),
        sa.Column('page_url', sa.String(length=1000), nullable=True),
        sa.Column('session_history', sa.JSON(), nullable=False),
        sa.Column('session_phases', sa.JSON(), nullable=False),
        sa.Column('ip_history', sa.JSON(), nullable=False),
        sa.Column('total_page_views', sa.Integer(), nullable=False),
        sa.Column('guest_page_views', sa.Integer(), nullable=False),
        sa.Column('customer_page_views', sa.Integer(), nullable=False),
        sa.Column('login_time', sa.DateTime(), nullable=True),
        sa.Column('last_activity', sa.DateTime(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_online_users_browser_id', 'online_users', ['browser_id'], unique=True)
    op.create_index('ix_online_users_user_type', 'online_users', ['user_type'], unique=False)
    op.create_index('ix_online_users_customer_id', 'online_users', ['customer_id'], unique=False)
    op.create_index('ix_online_users_last_activity', 'online_users', ['last_activity'], unique=False)
    op.create_index('idx_online_user_customer_type', 'online_users', ['customer_id', 'user_type'], unique=False)
    
    # Append-only activity log
    op.create_table('user_activities',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('customer_id', sa.String(length=36), nullable=True),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('entity_type', entity_type, nullable=True),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('order_id', sa.String(length=36), nullable=True),
        sa.Column('category_id', sa.String(length=36), nullable=True),
        sa.Column('entity_id', sa.String(length=100), nullable=True),
        sa.Column('activity_data', sa.JSON(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=500), nullable=True),
        sa.Column('browser_id', sa.String(length=100), nullable=True),
        sa.Column('source', client_source, nullable=False),
        sa.Column('last_activity', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_user_activities_customer_id', 'user_activities', ['customer_id'], unique=False)
    op.create_index('ix_user_activities_action', 'user_activities', ['action'], unique=False)
    op.create_index('ix_user_activities_entity_type', 'user_activities', ['entity_type'], unique=False)
    op.create_index('ix_user_activities_product_id', 'user_activities', ['product_id'], unique=False)
    op.create_index('ix_user_activities_order_id', 'user_activities', ['order_id'], unique=False)
    op.create_index('ix_user_activities_category_id', 'user_activities', ['category_id'], unique=False)
    op.create_index('ix_user_activities_entity_id', 'user_activities', ['entity_id'], unique=False)
    op.create_index('ix_user_activities_browser_id', 'user_activities', ['browser_id'], unique=False)
    op.create_index('ix_user_activities_source', 'user_activities', ['source'], unique=False)
    op.create_index('ix_user_activities_last_activity', 'user_activities', ['last_activity'], unique=False)
    op.create_index('idx_user_activity_action_date', 'user_activities', ['action', 'last_activity'], unique=False)


def downgrade():
    op.drop_table('user_activities')
    op.drop_table('online_users')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('cart_items')
    op.drop_table('products')
    op.drop_table('categories')
    op.drop_table('admins')
    op.drop_table('customers')
    
    # PostgreSQL keeps enum types after their tables are gone
    bind = op.get_bind()
    for enum_type in (entity_type, client_source, user_type, order_status, admin_role):
        enum_type.drop(bind, checkfirst=True)
