"""Add primary image URL to products.

Revision ID: 002
Revises: 001
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add products.image_url (NULL falls back to the placeholder image)."""
    op.add_column('products', sa.Column('image_url', sa.String(1000), nullable=True))


def downgrade() -> None:
    """Drop products.image_url."""
    op.drop_column('products', 'image_url')
