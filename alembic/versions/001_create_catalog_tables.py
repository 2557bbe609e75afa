"""Create categories, products and product_tags tables.

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create catalog tables and the indexes search relies on."""
    # Categories table (self-referencing tree)
    op.create_table(
        'categories',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('slug', sa.String(120), nullable=False, unique=True),
        sa.Column('parent_id', sa.String(36),
                  sa.ForeignKey('categories.id', ondelete='RESTRICT'), nullable=True, index=True),
        sa.Column('level', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
    )

    # Products table
    op.create_table(
        'products',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('slug', sa.String(220), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('brand', sa.String(100), nullable=True, index=True),
        sa.Column('category_id', sa.String(36),
                  sa.ForeignKey('categories.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('discount_percentage', sa.Integer(), nullable=True),
        sa.Column('rating', sa.Numeric(2, 1), nullable=False, server_default='0.0'),
        sa.Column('num_reviews', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('stock_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('is_featured', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    )

    # Composite indexes for the default sorts over active products
    op.create_index('ix_products_active_created', 'products', ['is_active', 'created_at'])
    op.create_index('ix_products_active_price', 'products', ['is_active', 'price'])
    op.create_index('ix_products_active_rating', 'products', ['is_active', 'rating'])

    # Product tags table (one row per tag)
    op.create_table(
        'product_tags',
        sa.Column('product_id', sa.String(36),
                  sa.ForeignKey('products.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('tag', sa.String(50), primary_key=True),
    )
    op.create_index('ix_product_tags_tag', 'product_tags', ['tag'])


def downgrade() -> None:
    """Drop catalog tables."""
    op.drop_index('ix_product_tags_tag', table_name='product_tags')
    op.drop_table('product_tags')
    op.drop_index('ix_products_active_rating', table_name='products')
    op.drop_index('ix_products_active_price', table_name='products')
    op.drop_index('ix_products_active_created', table_name='products')
    op.drop_table('products')
    op.drop_table('categories')
