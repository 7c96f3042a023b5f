"""Create social schema

Revision ID: 1f3c9a7d2b10
Revises:
Create Date: 2026-10-19 10:12:31.512044

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '1f3c9a7d2b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _enum(name, *values):
    return postgresql.ENUM(*values, name=name, create_type=False)

user_type_enum = _enum("usertype", "OWNER", "ADMIN", "TEACHER", "STUDENT")
account_status_enum = _enum("accountstatus", "ACTIVE", "BANNED", "DELETED")
friend_request_policy_enum = _enum("friendrequestpolicy", "EVERYONE", "NOBODY")
friendship_status_enum = _enum("friendshipstatus", "PENDING", "ACCEPTED", "BLOCKED")
post_target_enum = _enum("posttarget", "USER", "GROUP", "ROOM", "INSTITUTION", "DEPARTMENT", "PAGE")
post_visibility_enum = _enum("postvisibility", "PUBLIC", "INTERNAL", "CONNECTIONS", "ONLY_ME")
post_type_enum = _enum("posttype", "GENERAL", "ANNOUNCEMENT", "RESOURCE", "POLL", "QUESTION")
reaction_target_enum = _enum("reactiontarget", "POST", "COMMENT")
group_privacy_enum = _enum("groupprivacy", "PUBLIC", "PRIVATE", "CLOSED")
group_type_enum = _enum(
    "grouptype", "OFFICIAL_UNIVERSITY", "OFFICIAL_SESSION", "OFFICIAL_DEPT",
    "OFFICIAL_DEPT_SESSION", "JOBS_CAREERS", "GENERAL",
)
resource_role_enum = _enum("resourcerole", "OWNER", "ADMIN", "MODERATOR", "MEMBER")
membership_status_enum = _enum("membershipstatus", "JOINED", "PENDING", "INVITED", "REJECTED", "BANNED", "LEFT")
room_status_enum = _enum("roomstatus", "ACTIVE", "ARCHIVED")
follow_target_enum = _enum("followtarget", "INSTITUTION", "DEPARTMENT")
notification_type_enum = _enum(
    "notificationtype", "FRIEND_REQUEST", "FRIEND_ACCEPT", "LIKE", "COMMENT", "GROUP_APPROVE", "SYSTEM",
)
related_kind_enum = _enum("relatedkind", "USER", "POST", "COMMENT", "GROUP", "ROOM")

ALL_ENUMS = [
    user_type_enum, account_status_enum, friend_request_policy_enum, friendship_status_enum,
    post_target_enum, post_visibility_enum, post_type_enum, reaction_target_enum,
    group_privacy_enum, group_type_enum, resource_role_enum, membership_status_enum,
    room_status_enum, follow_target_enum, notification_type_enum, related_kind_enum,
]


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Create every table of the social graph.

    Enum types are shared between tables (memberships use the same role and
    status types), so they are created once up front.
    """
    bind = op.get_bind()
    for enum_type in ALL_ENUMS:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        'institutions',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('code', sa.String(), nullable=False, unique=True),
        sa.Column('valid_domains', sa.String(), server_default=''),
        sa.Column('followers_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )

    op.create_table(
        'departments',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('institution_id', sa.String(), sa.ForeignKey('institutions.id'), nullable=False, index=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('followers_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('user_name', sa.String(), nullable=False, unique=True),
        sa.Column('full_name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=True, unique=True),
        sa.Column('user_type', user_type_enum, nullable=False, server_default='STUDENT'),
        sa.Column('account_status', account_status_enum, nullable=False, server_default='ACTIVE'),
        sa.Column('institution_id', sa.String(), sa.ForeignKey('institutions.id'), nullable=True, index=True),
        sa.Column('department_id', sa.String(), sa.ForeignKey('departments.id'), nullable=True, index=True),
        sa.Column('is_student_email', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('friend_request_policy', friend_request_policy_enum, nullable=False, server_default='EVERYONE'),
        sa.Column('connections_count', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
    )

    op.create_table(
        'device_tokens',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id'), index=True),
        sa.Column('token', sa.String(), index=True),
        sa.Column('platform', sa.String()),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        *_timestamps(),
    )

    # One row per unordered user pair, enforced through pair_key
    op.create_table(
        'friendships',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('requester_id', sa.String(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('recipient_id', sa.String(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('pair_key', sa.String(), nullable=False, unique=True),
        sa.Column('status', friendship_status_enum, nullable=False, server_default='PENDING', index=True),
        sa.Column('blocked_by', sa.String(), sa.ForeignKey('users.id'), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'follows',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('follower_id', sa.String(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('following_id', sa.String(), nullable=False, index=True),
        sa.Column('following_kind', follow_target_enum, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.UniqueConstraint('follower_id', 'following_kind', 'following_id', name='uq_follow'),
    )

    op.create_table(
        'groups',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('slug', sa.String(), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('privacy', group_privacy_enum, nullable=False, server_default='PUBLIC'),
        sa.Column('group_type', group_type_enum, nullable=False, server_default='GENERAL'),
        sa.Column('creator_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('allow_member_posting', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('members_count', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
    )

    op.create_table(
        'group_memberships',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('group_id', sa.String(), sa.ForeignKey('groups.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('role', resource_role_enum, nullable=False, server_default='MEMBER'),
        sa.Column('status', membership_status_enum, nullable=False, server_default='JOINED', index=True),
        sa.Column('invited_by', sa.String(), sa.ForeignKey('users.id'), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('group_id', 'user_id', name='uq_group_membership'),
    )

    op.create_table(
        'rooms',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('course_code', sa.String(), nullable=True),
        sa.Column('session', sa.String(), nullable=True),
        sa.Column('join_code', sa.String(6), nullable=False, unique=True),
        sa.Column('creator_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('status', room_status_enum, nullable=False, server_default='ACTIVE'),
        sa.Column('members_count', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
    )

    op.create_table(
        'room_memberships',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('room_id', sa.String(), sa.ForeignKey('rooms.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('role', resource_role_enum, nullable=False, server_default='MEMBER'),
        sa.Column('status', membership_status_enum, nullable=False, server_default='JOINED'),
        *_timestamps(),
        sa.UniqueConstraint('room_id', 'user_id', name='uq_room_membership'),
    )

    op.create_table(
        'posts',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('author_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('target_id', sa.String(), nullable=False),
        sa.Column('target_kind', post_target_enum, nullable=False, server_default='USER'),
        sa.Column('visibility', post_visibility_enum, nullable=False, server_default='PUBLIC', index=True),
        sa.Column('post_type', post_type_enum, nullable=False, server_default='GENERAL'),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('shared_post_id', sa.String(), sa.ForeignKey('posts.id'), nullable=True, index=True),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('likes_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('comments_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('shares_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_pinned', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index('ix_posts_target_created', 'posts', ['target_id', 'target_kind', 'created_at'])
    op.create_index('ix_posts_author_created', 'posts', ['author_id', 'created_at'])

    op.create_table(
        'reactions',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('target_id', sa.String(), nullable=False, index=True),
        sa.Column('target_kind', reaction_target_enum, nullable=False, server_default='POST'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )
    op.create_index('ux_reactions_user_target', 'reactions', ['user_id', 'target_kind', 'target_id'], unique=True)

    op.create_table(
        'comments',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('post_id', sa.String(), sa.ForeignKey('posts.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('author_id', sa.String(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('parent_id', sa.String(), sa.ForeignKey('comments.id'), nullable=True, index=True),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )

    op.create_table(
        'notifications',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('recipient_id', sa.String(), sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('actor_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('type', notification_type_enum, nullable=False),
        sa.Column('related_id', sa.String(), nullable=True),
        sa.Column('related_kind', related_kind_enum, nullable=True),
        sa.Column('message', sa.String(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_hidden', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )


def downgrade() -> None:
    """Drop every table, children first, then the enum types."""
    for table in (
        'notifications', 'comments', 'reactions', 'posts', 'room_memberships', 'rooms',
        'group_memberships', 'groups', 'follows', 'friendships', 'device_tokens', 'users',
        'departments', 'institutions',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum_type in reversed(ALL_ENUMS):
        enum_type.drop(bind, checkfirst=True)
