"""create_reservation_tables

Revision ID: 4c1d7e2a9b30
Revises:
Create Date: 2026-09-14 18:42:05.311204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '4c1d7e2a9b30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create groups, reservations, invitations and group_audit_events tables."""
    op.create_table('groups',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('owner_actor_id', sa.String(length=128), nullable=False),
        sa.Column('admin_actor_ids', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('member_actor_ids', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('member_display_names', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.Column('deleted_by_actor_id', sa.String(length=128), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_groups_owner_actor_id', 'groups', ['owner_actor_id'], unique=False)
    # Containment lookups on the member list
    op.create_index(
        'ix_groups_member_actor_ids', 'groups', ['member_actor_ids'],
        unique=False, postgresql_using='gin',
    )

    op.create_table('reservations',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('group_id', sa.String(length=64), nullable=False, server_default='default-group'),
        sa.Column('group_name', sa.String(length=100), nullable=True),
        sa.Column('visibility_scope', sa.String(length=20), nullable=True),
        sa.Column('venue_id', sa.String(length=128), nullable=True),
        sa.Column('venue_name', sa.String(length=255), nullable=True),
        sa.Column('venue_address', sa.Text(), nullable=True),
        sa.Column('court_id', sa.String(length=128), nullable=True),
        sa.Column('court_name', sa.String(length=255), nullable=True),
        sa.Column('start_date_time', sa.String(length=64), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=True),
        sa.Column('created_by', postgresql.JSONB(), nullable=True),
        sa.Column('created_by_id', sa.String(length=128), nullable=True),
        sa.Column('created_by_actor_id', sa.String(length=128), nullable=True),
        sa.Column('guest_access_actor_ids', postgresql.JSONB(), nullable=True),
        sa.Column('rules', postgresql.JSONB(), nullable=True),
        sa.Column('signups', postgresql.JSONB(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint("status IN ('active', 'cancelled')", name='ck_reservations_status'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_reservations_group_id', 'reservations', ['group_id'], unique=False)
    op.create_index(
        'ix_reservations_created_by_actor_id', 'reservations', ['created_by_actor_id'], unique=False
    )
    op.create_index('ix_reservations_created_by_id', 'reservations', ['created_by_id'], unique=False)
    op.create_index(
        'ix_reservations_signups', 'reservations', ['signups'],
        unique=False, postgresql_using='gin',
    )

    op.create_table('invitations',
        sa.Column('token', sa.String(length=128), nullable=False),
        sa.Column('target_type', sa.String(length=20), nullable=False),
        sa.Column('group_id', sa.String(length=64), nullable=False),
        sa.Column('reservation_id', sa.String(length=64), nullable=True),
        sa.Column('created_by_actor_id', sa.String(length=128), nullable=False),
        sa.Column('channel', sa.String(length=20), nullable=False, server_default='link'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint("target_type IN ('group', 'reservation')", name='ck_invitations_target_type'),
        sa.CheckConstraint("status IN ('active', 'revoked')", name='ck_invitations_status'),
        sa.PrimaryKeyConstraint('token'),
    )
    op.create_index('ix_invitations_group_id', 'invitations', ['group_id'], unique=False)

    op.create_table('group_audit_events',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('group_id', sa.String(length=64), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('actor_id', sa.String(length=128), nullable=False),
        sa.Column('actor_name', sa.String(length=255), nullable=False),
        sa.Column('target_id', sa.String(length=128), nullable=True),
        sa.Column('target_name', sa.String(length=255), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_group_audit_events_group_id', 'group_audit_events', ['group_id'], unique=False)


def downgrade() -> None:
    """Drop all reservation tables."""
    op.drop_index('ix_group_audit_events_group_id', table_name='group_audit_events')
    op.drop_table('group_audit_events')
    op.drop_index('ix_invitations_group_id', table_name='invitations')
    op.drop_table('invitations')
    op.drop_index('ix_reservations_signups', table_name='reservations')
    op.drop_index('ix_reservations_created_by_id', table_name='reservations')
    op.drop_index('ix_reservations_created_by_actor_id', table_name='reservations')
    op.drop_index('ix_reservations_group_id', table_name='reservations')
    op.drop_table('reservations')
    op.drop_index('ix_groups_member_actor_ids', table_name='groups')
    op.drop_index('ix_groups_owner_actor_id', table_name='groups')
    op.drop_table('groups')
