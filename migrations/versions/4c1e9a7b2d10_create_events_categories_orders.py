"""Create categories, events and orders tables

Revision ID: 4c1e9a7b2d10
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c1e9a7b2d10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('categories',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )
    op.create_table('events',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('image_url', sa.String(length=1000), nullable=True),
        sa.Column('start_date_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('price', sa.String(length=32), nullable=True),
        sa.Column('is_free', sa.Boolean(), nullable=True),
        sa.Column('url', sa.String(length=1000), nullable=True),
        sa.Column('category_id', sa.String(length=36), nullable=False),
        sa.Column('organizer', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_events_category_id', 'events', ['category_id'])
    op.create_index('ix_events_organizer', 'events', ['organizer'])
    op.create_index('ix_events_created_at', 'events', ['created_at'])

    # stripe_id is the checkout session id; the unique constraint is what
    # makes webhook redelivery a no-op.
    op.create_table('orders',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('stripe_id', sa.String(length=255), nullable=False),
        sa.Column('event_id', sa.String(length=36), nullable=False),
        sa.Column('buyer_id', sa.String(length=255), nullable=True),
        sa.Column('total_amount', sa.String(length=32), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('stripe_id')
    )
    op.create_index('ix_orders_event_id', 'orders', ['event_id'])
    op.create_index('ix_orders_buyer_id', 'orders', ['buyer_id'])
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])


def downgrade():
    op.drop_index('ix_orders_created_at', table_name='orders')
    op.drop_index('ix_orders_buyer_id', table_name='orders')
    op.drop_index('ix_orders_event_id', table_name='orders')
    op.drop_table('orders')
    op.drop_index('ix_events_created_at', table_name='events')
    op.drop_index('ix_events_organizer', table_name='events')
    op.drop_index('ix_events_category_id', table_name='events')
    op.drop_table('events')
    op.drop_table('categories')
