"""create_hub_tables

Revision ID: 3c1f9a2e7b44
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c1f9a2e7b44'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('uid', sa.TEXT(), nullable=False),
        sa.Column('name', sa.TEXT(), nullable=False),
        sa.Column('email', sa.TEXT(), nullable=False),
        sa.Column('role', sa.TEXT(), nullable=False),
        sa.Column('status', sa.TEXT(), nullable=False),
        sa.Column('avatar_url', sa.TEXT(), nullable=True),
        sa.Column('enabled_services', sa.JSON(), nullable=False),
        sa.Column('subscription_plan_id', sa.TEXT(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('last_login_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('deletion_requested_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('deletion_requested_by', sa.TEXT(), nullable=True),
        sa.PrimaryKeyConstraint('uid'),
    )
    op.create_index('idx_users_role', 'users', ['role'])
    op.create_index('idx_users_deletion_requested', 'users', ['deletion_requested_at'])

    op.create_table(
        'roles',
        sa.Column('id', sa.TEXT(), nullable=False),
        sa.Column('name', sa.TEXT(), nullable=False),
        sa.Column('name_lower', sa.TEXT(), nullable=False),
        sa.Column('description', sa.TEXT(), nullable=False),
        sa.Column('permissions', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    # Case-insensitive role name uniqueness
    op.create_index('uq_roles_name_lower', 'roles', ['name_lower'], unique=True)

    op.create_table(
        'services',
        sa.Column('slug', sa.TEXT(), nullable=False),
        sa.Column('name', sa.TEXT(), nullable=False),
        sa.Column('description', sa.TEXT(), nullable=False),
        sa.Column('icon', sa.TEXT(), nullable=False),
        sa.Column('url', sa.TEXT(), nullable=False),
        sa.Column('is_active', sa.BOOLEAN(), nullable=False),
        sa.Column('linked_subscription_ids', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('slug'),
    )
    op.create_index('idx_services_active', 'services', ['is_active'])

    op.create_table(
        'subscriptions',
        sa.Column('id', sa.TEXT(), nullable=False),
        sa.Column('name', sa.TEXT(), nullable=False),
        sa.Column('slug', sa.TEXT(), nullable=False),
        sa.Column('description', sa.TEXT(), nullable=True),
        sa.Column('duration', sa.TEXT(), nullable=False),
        sa.Column('points', sa.INTEGER(), nullable=False),
        sa.Column('storage_limit_mb', sa.INTEGER(), nullable=False),
        sa.Column('price', sa.TEXT(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('uq_subscriptions_slug', 'subscriptions', ['slug'], unique=True)


def downgrade() -> None:
    op.drop_index('uq_subscriptions_slug', table_name='subscriptions')
    op.drop_table('subscriptions')
    op.drop_index('idx_services_active', table_name='services')
    op.drop_table('services')
    op.drop_index('uq_roles_name_lower', table_name='roles')
    op.drop_table('roles')
    op.drop_index('idx_users_deletion_requested', table_name='users')
    op.drop_index('idx_users_role', table_name='users')
    op.drop_table('users')
