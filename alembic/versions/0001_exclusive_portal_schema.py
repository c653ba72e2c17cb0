"""Exclusive portal schema

Revision ID: 0001
Revises: 
Create Date: 2026-10-19 00:00:00.000000

Tables that already exist (databases created by the earlier Node migrate
script) are left untouched so the upgrade can adopt them.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None


def _has_table(name: str) -> bool:
    return sa.inspect(op.get_bind()).has_table(name)


def upgrade() -> None:
    # Create settings table
    if not _has_table('settings'):
        op.create_table('settings',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('exclusiveEnabled', sa.Boolean(), server_default='0', nullable=True),
            sa.Column('passwordHash', sa.Text(), nullable=False),
            sa.Column('updatedAt', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )

    # Create products table
    if not _has_table('products'):
        op.create_table('products',
            sa.Column('id', sa.String(length=64), nullable=False),
            sa.Column('title', sa.Text(), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('priceCents', sa.Integer(), nullable=True),
            sa.Column('createdAt', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )

    # Create orders table
    if not _has_table('orders'):
        op.create_table('orders',
            sa.Column('id', sa.String(length=64), nullable=False),
            sa.Column('productId', sa.String(length=64), nullable=False),
            sa.Column('quantity', sa.Integer(), nullable=True),
            sa.Column('stripeSessionId', sa.Text(), nullable=True),
            sa.Column('status', sa.String(length=20), server_default='pending', nullable=True),
            sa.Column('createdAt', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
            sa.ForeignKeyConstraint(['productId'], ['products.id'], ),
            sa.PrimaryKeyConstraint('id')
        )


def downgrade() -> None:
    op.drop_table('orders')
    op.drop_table('products')
    op.drop_table('settings')
