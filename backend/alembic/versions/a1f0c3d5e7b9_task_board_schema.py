"""Task-board schema (workspaces, boards, lists, cards, card content, activity log, notifications)

Revision ID: a1f0c3d5e7b9
Revises:
Create Date: 2026-10-19T09:12:44.118204
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = 'a1f0c3d5e7b9'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVITY_ACTIONS = (
    'WORKSPACE_CREATED', 'WORKSPACE_UPDATED', 'WORKSPACE_DELETED',
    'BOARD_CREATED', 'BOARD_UPDATED', 'BOARD_DELETED', 'LIST_ORDER_UPDATED',
    'MEMBER_INVITED', 'MEMBER_REMOVED', 'MEMBER_LEFT', 'BOARD_OWNERSHIP_TRANSFERRED',
    'LIST_CREATED', 'LIST_UPDATED', 'LIST_DELETED', 'CARD_ORDER_UPDATED',
    'CARD_CREATED', 'CARD_UPDATED', 'CARD_DELETED', 'CARD_MOVED',
    'CARD_COMPLETED', 'CARD_UNCOMPLETED', 'CARD_MEMBER_ADDED', 'CARD_MEMBER_REMOVED',
    'COMMENT_ADDED', 'COMMENT_HIDDEN', 'NOTE_ADDED', 'NOTE_HIDDEN',
    'CHECKLIST_ADDED', 'CHECKLIST_UPDATED', 'CHECKLIST_DELETED',
    'CHECKLIST_ITEM_ADDED', 'CHECKLIST_ITEM_COMPLETED', 'CHECKLIST_ITEM_UNCOMPLETED',
    'CHECKLIST_ITEM_UPDATED', 'CHECKLIST_ITEM_DELETED',
)
TARGET_MODELS = ('WORKSPACE', 'BOARD', 'LIST', 'CARD', 'USER')


def upgrade() -> None:
    # --- users ---
    op.create_table(
        'users',
        sa.Column('id', sa.String(24), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('display_name', sa.String(), nullable=False, server_default=''),
        sa.Column('avatar_url', sa.String(), nullable=True),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default='true'),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_is_active', 'users', ['is_active'])
    op.create_index('ix_users_created_at', 'users', ['created_at'])

    # --- workspaces ---
    op.create_table(
        'workspaces',
        sa.Column('id', sa.String(24), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('background', sa.String(), nullable=True),
        sa.Column('owner_id', sa.String(24), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('activity_ids', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_workspaces_owner_id', 'workspaces', ['owner_id'])
    op.create_index('ix_workspaces_is_deleted', 'workspaces', ['is_deleted'])
    op.create_index('ix_workspaces_created_at', 'workspaces', ['created_at'])

    op.create_table(
        'workspace_members',
        sa.Column('id', sa.String(24), nullable=False),
        sa.Column('workspace_id', sa.String(24), sa.ForeignKey('workspaces.id'), nullable=False),
        sa.Column('user_id', sa.String(24), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('workspace_id', 'user_id', name='uq_workspace_member'),
    )
    op.create_index('ix_workspace_members_workspace_id', 'workspace_members', ['workspace_id'])
    op.create_index('ix_workspace_members_user_id', 'workspace_members', ['user_id'])

    # --- boards ---
    op.create_table(
        'boards',
        sa.Column('id', sa.String(24), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('background', sa.String(), nullable=True),
        sa.Column('visibility', sa.Enum('PRIVATE', 'WORKSPACE', 'PUBLIC', name='boardvisibility'), nullable=False, server_default='PRIVATE'),
        sa.Column('owner_id', sa.String(24), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('workspace_id', sa.String(24), sa.ForeignKey('workspaces.id'), nullable=False),
        sa.Column('list_order_ids', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('activity_ids', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_boards_owner_id', 'boards', ['owner_id'])
    op.create_index('ix_boards_workspace_id', 'boards', ['workspace_id'])
    op.create_index('ix_boards_is_deleted', 'boards', ['is_deleted'])
    op.create_index('ix_boards_created_at', 'boards', ['created_at'])
    op.create_index('idx_board_workspace_deleted', 'boards', ['workspace_id', 'is_deleted'])

    op.create_table(
        'board_members',
        sa.Column('id', sa.String(24), nullable=False),
        sa.Column('board_id', sa.String(24), sa.ForeignKey('boards.id'), nullable=False),
        sa.Column('user_id', sa.String(24), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('board_id', 'user_id', name='uq_board_member'),
    )
    op.create_index('ix_board_members_board_id', 'board_members', ['board_id'])
    op.create_index('ix_board_members_user_id', 'board_members', ['user_id'])

    op.create_table(
        'board_invitations',
        sa.Column('id', sa.String(24), nullable=False),
        sa.Column('board_id', sa.String(24), sa.ForeignKey('boards.id'), nullable=False),
        sa.Column('user_id', sa.String(24), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('invited_by', sa.String(24), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('invited_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_board_invitations_board_id', 'board_invitations', ['board_id'])
    op.create_index('ix_board_invitations_user_id', 'board_invitations', ['user_id'])

    # --- lists ---
    op.create_table(
        'lists',
        sa.Column('id', sa.String(24), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('board_id', sa.String(24), sa.ForeignKey('boards.id'), nullable=False),
        sa.Column('position', sa.Float(), nullable=False, server_default='0'),
        sa.Column('card_order_ids', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('activity_ids', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_lists_board_id', 'lists', ['board_id'])
    op.create_index('ix_lists_is_deleted', 'lists', ['is_deleted'])
    op.create_index('ix_lists_created_at', 'lists', ['created_at'])

    # --- cards ---
    op.create_table(
        'cards',
        sa.Column('id', sa.String(24), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('list_id', sa.String(24), sa.ForeignKey('lists.id'), nullable=False),
        sa.Column('board_id', sa.String(24), sa.ForeignKey('boards.id'), nullable=False),
        sa.Column('member_ids', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('cover', sa.String(), nullable=True),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('completed', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('activity_ids', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_cards_list_id', 'cards', ['list_id'])
    op.create_index('ix_cards_board_id', 'cards', ['board_id'])
    op.create_index('ix_cards_is_deleted', 'cards', ['is_deleted'])
    op.create_index('ix_cards_created_at', 'cards', ['created_at'])
    op.create_index('idx_card_list_deleted', 'cards', ['list_id', 'is_deleted'])

    # --- card content ---
    op.create_table(
        'checklists',
        sa.Column('id', sa.String(24), nullable=False),
        sa.Column('card_id', sa.String(24), sa.ForeignKey('cards.id'), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_checklists_card_id', 'checklists', ['card_id'])

    op.create_table(
        'checklist_items',
        sa.Column('id', sa.String(24), nullable=False),
        sa.Column('checklist_id', sa.String(24), sa.ForeignKey('checklists.id'), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('completed', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_checklist_items_checklist_id', 'checklist_items', ['checklist_id'])

    op.create_table(
        'card_comments',
        sa.Column('id', sa.String(24), nullable=False),
        sa.Column('card_id', sa.String(24), sa.ForeignKey('cards.id'), nullable=False),
        sa.Column('author_id', sa.String(24), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_card_comments_card_id', 'card_comments', ['card_id'])

    op.create_table(
        'card_notes',
        sa.Column('id', sa.String(24), nullable=False),
        sa.Column('card_id', sa.String(24), sa.ForeignKey('cards.id'), nullable=False),
        sa.Column('author_id', sa.String(24), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_card_notes_card_id', 'card_notes', ['card_id'])

    # --- activities ---
    op.create_table(
        'activities',
        sa.Column('id', sa.String(24), nullable=False),
        sa.Column('actor_id', sa.String(24), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('action', sa.Enum(*ACTIVITY_ACTIONS, name='activityaction'), nullable=False),
        sa.Column('target_id', sa.String(24), nullable=False),
        sa.Column('target_model', sa.Enum(*TARGET_MODELS, name='targetmodel'), nullable=False),
        sa.Column('board_id', sa.String(24), nullable=True),
        sa.Column('workspace_id', sa.String(24), nullable=True),
        sa.Column('details', sa.Text(), nullable=False, server_default=''),
        sa.Column('is_hidden', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_activities_actor_id', 'activities', ['actor_id'])
    op.create_index('ix_activities_action', 'activities', ['action'])
    op.create_index('ix_activities_target_id', 'activities', ['target_id'])
    op.create_index('ix_activities_board_id', 'activities', ['board_id'])
    op.create_index('ix_activities_workspace_id', 'activities', ['workspace_id'])
    op.create_index('ix_activities_timestamp', 'activities', ['timestamp'])
    op.create_index('idx_activity_target', 'activities', ['target_model', 'target_id'])

    # --- notifications ---
    op.create_table(
        'notifications',
        sa.Column('id', sa.String(24), nullable=False),
        sa.Column('recipient_id', sa.String(24), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('type', sa.Enum('ACTIVITY', 'MENTION', 'ASSIGNMENT', 'DUE_DATE', 'GENERAL', name='notificationtype'), nullable=False, server_default='ACTIVITY'),
        sa.Column('target_id', sa.String(24), nullable=True),
        sa.Column('target_model', postgresql.ENUM(*TARGET_MODELS, name='targetmodel', create_type=False), nullable=True),
        sa.Column('activity_id', sa.String(24), sa.ForeignKey('activities.id'), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('is_hidden', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notifications_recipient_id', 'notifications', ['recipient_id'])
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])
    op.create_index('idx_notification_recipient_read', 'notifications', ['recipient_id', 'is_read'])


def downgrade() -> None:
    op.drop_table('notifications')
    op.drop_table('activities')
    op.drop_table('card_notes')
    op.drop_table('card_comments')
    op.drop_table('checklist_items')
    op.drop_table('checklists')
    op.drop_table('cards')
    op.drop_table('lists')
    op.drop_table('board_invitations')
    op.drop_table('board_members')
    op.drop_table('boards')
    op.drop_table('workspace_members')
    op.drop_table('workspaces')
    op.drop_table('users')
    op.execute("DROP TYPE IF EXISTS notificationtype")
    op.execute("DROP TYPE IF EXISTS targetmodel")
    op.execute("DROP TYPE IF EXISTS activityaction")
    op.execute("DROP TYPE IF EXISTS boardvisibility")
