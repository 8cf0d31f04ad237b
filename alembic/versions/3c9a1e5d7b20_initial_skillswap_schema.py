"""initial skillswap schema

Revision ID: 3c9a1e5d7b20
Revises:
Create Date: 2026-10-19 09:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3c9a1e5d7b20'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('users',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('name', sa.String(length=50), nullable=False),
    sa.Column('student_id', sa.String(length=50), nullable=False),
    sa.Column('email', sa.String(length=255), nullable=False),
    sa.Column('api_token', sa.String(length=128), nullable=False),
    sa.Column('skills_offered', sa.JSON(), nullable=False),
    sa.Column('skills_looking_for', sa.JSON(), nullable=False),
    sa.Column('bio', sa.String(length=500), nullable=True),
    sa.Column('is_admin', sa.Boolean(), nullable=False),
    sa.Column('is_active', sa.Boolean(), nullable=False),
    sa.Column('average_rating', sa.Float(), nullable=False),
    sa.Column('total_ratings', sa.Integer(), nullable=False),
    sa.Column('reputation', sa.Integer(), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('student_id'),
    sa.UniqueConstraint('email'),
    sa.UniqueConstraint('api_token')
    )
    op.create_index('idx_users_api_token', 'users', ['api_token'], unique=False)

    op.create_table('friend_requests',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('sender_id', sa.Uuid(), nullable=False),
    sa.Column('receiver_id', sa.Uuid(), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('message', sa.String(length=200), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
    sa.CheckConstraint("status IN ('pending', 'accepted', 'declined', 'removed')", name='ck_friend_requests_status'),
    sa.ForeignKeyConstraint(['receiver_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['sender_id'], ['users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('sender_id', 'receiver_id', name='uq_friend_requests_sender_receiver')
    )
    op.create_index('idx_friend_requests_receiver_status', 'friend_requests', ['receiver_id', 'status'], unique=False)
    op.create_index('idx_friend_requests_sender_status', 'friend_requests', ['sender_id', 'status'], unique=False)

    op.create_table('chats',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('pair_key', sa.String(length=80), nullable=False),
    sa.Column('user_low', sa.Uuid(), nullable=False),
    sa.Column('user_high', sa.Uuid(), nullable=False),
    sa.Column('is_active', sa.Boolean(), nullable=False),
    sa.Column('last_message_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    sa.ForeignKeyConstraint(['user_high'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['user_low'], ['users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('pair_key')
    )

    op.create_table('chat_messages',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('chat_id', sa.Uuid(), nullable=False),
    sa.Column('sender_id', sa.Uuid(), nullable=False),
    sa.Column('content', sa.String(length=1000), nullable=False),
    sa.Column('message_type', sa.String(length=20), nullable=False),
    sa.Column('is_read', sa.Boolean(), nullable=False),
    sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
    sa.ForeignKeyConstraint(['chat_id'], ['chats.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['sender_id'], ['users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_chat_messages_chat_time', 'chat_messages', ['chat_id', 'timestamp'], unique=False)

    op.create_table('feedback',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('reviewer_id', sa.Uuid(), nullable=False),
    sa.Column('reviewee_id', sa.Uuid(), nullable=False),
    sa.Column('rating', sa.Integer(), nullable=False),
    sa.Column('comment', sa.String(length=500), nullable=False),
    sa.Column('skill_category', sa.String(length=100), nullable=False),
    sa.Column('session_type', sa.String(length=20), nullable=False),
    sa.Column('is_anonymous', sa.Boolean(), nullable=False),
    sa.Column('is_verified', sa.Boolean(), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    sa.CheckConstraint('rating >= 1 AND rating <= 5', name='ck_feedback_rating_range'),
    sa.CheckConstraint('reviewer_id <> reviewee_id', name='ck_feedback_not_self'),
    sa.ForeignKeyConstraint(['reviewee_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['reviewer_id'], ['users.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_feedback_reviewee', 'feedback', ['reviewee_id', 'created_at'], unique=False)
    op.create_index('idx_feedback_reviewee_skill', 'feedback', ['reviewee_id', 'skill_category'], unique=False)

    op.create_table('skill_sessions',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('pair_key', sa.String(length=80), nullable=False),
    sa.Column('user_low', sa.Uuid(), nullable=False),
    sa.Column('user_high', sa.Uuid(), nullable=False),
    sa.Column('chat_id', sa.Uuid(), nullable=True),
    sa.Column('started_by', sa.Uuid(), nullable=True),
    sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
    sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
    sa.Column('duration_seconds', sa.Integer(), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('ended_by', sa.Uuid(), nullable=True),
    sa.Column('session_number', sa.Integer(), nullable=False),
    sa.Column('is_first_session', sa.Boolean(), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    sa.CheckConstraint('user_low <> user_high', name='ck_skill_sessions_distinct_participants'),
    sa.CheckConstraint("status IN ('active', 'completed', 'cancelled')", name='ck_skill_sessions_status'),
    sa.CheckConstraint('duration_seconds >= 0', name='ck_skill_sessions_duration'),
    sa.ForeignKeyConstraint(['user_low'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['user_high'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['started_by'], ['users.id'], ondelete='SET NULL'),
    sa.ForeignKeyConstraint(['ended_by'], ['users.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id')
    )
    # Single active session per pair
    op.create_index(
        'uq_skill_sessions_one_active_per_pair', 'skill_sessions', ['pair_key'],
        unique=True, postgresql_where=sa.text("status = 'active'")
    )
    op.create_index('idx_skill_sessions_pair_status', 'skill_sessions', ['pair_key', 'status'], unique=False)
    op.create_index('idx_skill_sessions_chat', 'skill_sessions', ['chat_id'], unique=False)

    op.create_table('session_feedback',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('session_id', sa.Uuid(), nullable=False),
    sa.Column('user_id', sa.Uuid(), nullable=False),
    sa.Column('feedback_id', sa.Uuid(), nullable=True),
    sa.Column('given_at', sa.DateTime(timezone=True), nullable=False),
    sa.ForeignKeyConstraint(['session_id'], ['skill_sessions.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['feedback_id'], ['feedback.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('session_id', 'user_id', name='uq_session_feedback_session_user')
    )


def downgrade() -> None:
    op.drop_table('session_feedback')

    op.drop_index('idx_skill_sessions_chat', table_name='skill_sessions')
    op.drop_index('idx_skill_sessions_pair_status', table_name='skill_sessions')
    op.drop_index('uq_skill_sessions_one_active_per_pair', table_name='skill_sessions')
    op.drop_table('skill_sessions')

    op.drop_index('idx_feedback_reviewee_skill', table_name='feedback')
    op.drop_index('idx_feedback_reviewee', table_name='feedback')
    op.drop_table('feedback')

    op.drop_index('idx_chat_messages_chat_time', table_name='chat_messages')
    op.drop_table('chat_messages')
    op.drop_table('chats')

    op.drop_index('idx_friend_requests_sender_status', table_name='friend_requests')
    op.drop_index('idx_friend_requests_receiver_status', table_name='friend_requests')
    op.drop_table('friend_requests')

    op.drop_index('idx_users_api_token', table_name='users')
    op.drop_table('users')
