"""create mission lifecycle tables

Revision ID: 3f1a9c2b7d40
Revises:
Create Date: 2026-10-19 09:12:44.102311

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ENUM


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2b7d40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ENUM_TYPES = {
    'userrole': ('MISSIONARY', 'ADVERTISER', 'ADMIN'),
    'space': ('PRO', 'SOLIDAIRE'),
    'missionstatus': ('PENDING', 'OPEN', 'CLOSED', 'ARCHIVED'),
    'applicationstatus': ('PENDING', 'ACCEPTED', 'REJECTED'),
    'submissionstatus': ('PENDING', 'ACCEPTED', 'REFUSED'),
    'feedprivacy': ('AUTO', 'ASK', 'NEVER'),
    'feedprivacyoverride': ('INHERIT', 'AUTO', 'ASK', 'NEVER'),
    'xpeventkind': ('MISSION_ACCEPTED', 'FOLLOW', 'FAVORITE', 'BONUS_MANUAL'),
    'messagetype': ('TEXT', 'CODE', 'REWARD'),
    'notificationtype': (
        'NEW_APPLICATION', 'APPLICATION_ACCEPTED', 'APPLICATION_REJECTED',
        'SUBMISSION_ACCEPTED', 'SUBMISSION_REJECTED', 'FEED_POST_DRAFT_READY',
        'FEED_POST_PUBLISHED', 'REWARD_DELIVERED', 'MISSION_APPROVED',
        'MISSION_REJECTED',
    ),
}


def enum(name: str) -> ENUM:
    return ENUM(*ENUM_TYPES[name], name=name, create_type=False)


def upgrade() -> None:
    """Upgrade schema."""
    # Enum types are shared between tables, so create each one exactly once
    for name, values in ENUM_TYPES.items():
        labels = ", ".join(f"'{value}'" for value in values)
        op.execute(f"""
            DO $$ BEGIN
                CREATE TYPE {name} AS ENUM ({labels});
            EXCEPTION
                WHEN duplicate_object THEN NULL;
            END $$;
        """)

    op.create_table(
        'user',
        sa.Column('id_user', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('display_name', sa.String(length=80), nullable=True),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('role', enum('userrole'), nullable=False),
        sa.Column('active_role', enum('userrole'), nullable=True),
        sa.Column('feed_privacy_default', enum('feedprivacy'), nullable=False),
        sa.Column('xp', sa.Integer(), nullable=False),
        sa.Column('xp_pro', sa.Integer(), nullable=False),
        sa.Column('xp_solid', sa.Integer(), nullable=False),
        sa.Column('last_accepted_at', sa.DateTime(), nullable=True),
        sa.Column('rating_avg', sa.Float(), nullable=False),
        sa.Column('rating_count', sa.Integer(), nullable=False),
        sa.Column('date_creation', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id_user')
    )
    op.create_index('ix_user_username', 'user', ['username'], unique=True)
    op.create_index('ix_user_email', 'user', ['email'], unique=True)
    op.create_index('ix_user_role', 'user', ['role'])

    op.create_table(
        'mission',
        sa.Column('id_mission', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=120), nullable=False),
        sa.Column('description', sa.String(length=2000), nullable=False),
        sa.Column('criteria', sa.String(length=1000), nullable=False),
        sa.Column('space', enum('space'), nullable=False),
        sa.Column('slots_max', sa.Integer(), nullable=False),
        sa.Column('reward_text', sa.String(length=500), nullable=True),
        sa.Column('image_url', sa.String(), nullable=True),
        sa.Column('organization_id', sa.Integer(), nullable=True),
        sa.Column('id_owner', sa.Integer(), nullable=False),
        sa.Column('status', enum('missionstatus'), nullable=False),
        sa.Column('slots_taken', sa.Integer(), nullable=False),
        sa.Column('base_xp', sa.Integer(), nullable=False),
        sa.Column('bonus_xp', sa.Integer(), nullable=False),
        sa.Column('is_hidden', sa.Boolean(), nullable=False),
        sa.Column('is_featured', sa.Boolean(), nullable=False),
        sa.Column('rejection_reason', sa.String(length=500), nullable=True),
        sa.Column('reward_escrow_content', sa.String(length=2000), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            'slots_taken >= 0 AND slots_taken <= slots_max',
            name='mission_slots_taken_range',
        ),
        sa.ForeignKeyConstraint(['id_owner'], ['user.id_user'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id_mission')
    )
    op.create_index('ix_mission_id_owner', 'mission', ['id_owner'])
    op.create_index('ix_mission_status', 'mission', ['status'])

    op.create_table(
        'application',
        sa.Column('id_application', sa.Integer(), nullable=False),
        sa.Column('id_mission', sa.Integer(), nullable=False),
        sa.Column('id_user', sa.Integer(), nullable=False),
        sa.Column('status', enum('applicationstatus'), nullable=False),
        sa.Column('message', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('decided_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['id_mission'], ['mission.id_mission'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['id_user'], ['user.id_user'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id_application'),
        sa.UniqueConstraint('id_mission', 'id_user', name='application_mission_user_key')
    )
    op.create_index('ix_application_id_mission', 'application', ['id_mission'])
    op.create_index('ix_application_id_user', 'application', ['id_user'])

    op.create_table(
        'submission',
        sa.Column('id_submission', sa.Integer(), nullable=False),
        sa.Column('id_mission', sa.Integer(), nullable=False),
        sa.Column('id_user', sa.Integer(), nullable=False),
        sa.Column('status', enum('submissionstatus'), nullable=False),
        sa.Column('proof_url', sa.String(length=2000), nullable=True),
        sa.Column('proof_shots', sa.JSON(), nullable=True),
        sa.Column('comments', sa.String(length=2000), nullable=True),
        sa.Column('feed_privacy_override', enum('feedprivacyoverride'), nullable=False),
        sa.Column('reason', sa.String(length=500), nullable=True),
        sa.Column('decision_at', sa.DateTime(), nullable=True),
        sa.Column('reward_delivered_at', sa.DateTime(), nullable=True),
        sa.Column('reward_note', sa.String(length=1000), nullable=True),
        sa.Column('reward_media_path', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['id_mission'], ['mission.id_mission'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['id_user'], ['user.id_user'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id_submission')
    )
    op.create_index('ix_submission_id_mission', 'submission', ['id_mission'])
    op.create_index('ix_submission_id_user', 'submission', ['id_user'])
    op.create_index('ix_submission_status', 'submission', ['status'])

    op.create_table(
        'thread',
        sa.Column('id_thread', sa.Integer(), nullable=False),
        sa.Column('id_application', sa.Integer(), nullable=True),
        sa.Column('id_submission', sa.Integer(), nullable=True),
        sa.Column('id_user_a', sa.Integer(), nullable=False),
        sa.Column('id_user_b', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            'id_application IS NULL OR id_submission IS NULL',
            name='thread_single_binding',
        ),
        sa.ForeignKeyConstraint(['id_application'], ['application.id_application'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['id_submission'], ['submission.id_submission'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['id_user_a'], ['user.id_user']),
        sa.ForeignKeyConstraint(['id_user_b'], ['user.id_user']),
        sa.PrimaryKeyConstraint('id_thread'),
        sa.UniqueConstraint('id_application'),
        sa.UniqueConstraint('id_submission')
    )
    op.create_index('ix_thread_id_user_a', 'thread', ['id_user_a'])
    op.create_index('ix_thread_id_user_b', 'thread', ['id_user_b'])

    op.create_table(
        'message',
        sa.Column('id_message', sa.Integer(), nullable=False),
        sa.Column('id_thread', sa.Integer(), nullable=False),
        sa.Column('id_author', sa.Integer(), nullable=False),
        sa.Column('type', enum('messagetype'), nullable=False),
        sa.Column('content', sa.String(length=4000), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['id_thread'], ['thread.id_thread'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['id_author'], ['user.id_user']),
        sa.PrimaryKeyConstraint('id_message')
    )
    op.create_index('ix_message_id_thread', 'message', ['id_thread'])

    op.create_table(
        'rating',
        sa.Column('id_rating', sa.Integer(), nullable=False),
        sa.Column('id_mission', sa.Integer(), nullable=False),
        sa.Column('id_submission', sa.Integer(), nullable=False),
        sa.Column('id_rater', sa.Integer(), nullable=False),
        sa.Column('id_advertiser', sa.Integer(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('comment', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['id_mission'], ['mission.id_mission'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['id_submission'], ['submission.id_submission'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['id_rater'], ['user.id_user']),
        sa.ForeignKeyConstraint(['id_advertiser'], ['user.id_user']),
        sa.PrimaryKeyConstraint('id_rating'),
        sa.UniqueConstraint('id_rater', 'id_mission', name='rating_rater_mission_key')
    )
    op.create_index('ix_rating_id_mission', 'rating', ['id_mission'])
    op.create_index('ix_rating_id_rater', 'rating', ['id_rater'])
    op.create_index('ix_rating_id_advertiser', 'rating', ['id_advertiser'])

    op.create_table(
        'xp_event',
        sa.Column('id_xp_event', sa.Integer(), nullable=False),
        sa.Column('id_user', sa.Integer(), nullable=False),
        sa.Column('id_mission', sa.Integer(), nullable=True),
        sa.Column('kind', enum('xpeventkind'), nullable=False),
        sa.Column('delta', sa.Integer(), nullable=False),
        sa.Column('space', enum('space'), nullable=True),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['id_user'], ['user.id_user'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['id_mission'], ['mission.id_mission'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id_xp_event')
    )
    op.create_index('ix_xp_event_id_user', 'xp_event', ['id_user'])

    op.create_table(
        'feed_post',
        sa.Column('id_post', sa.Integer(), nullable=False),
        sa.Column('id_author', sa.Integer(), nullable=False),
        sa.Column('id_mission', sa.Integer(), nullable=False),
        sa.Column('id_submission', sa.Integer(), nullable=False),
        sa.Column('space', enum('space'), nullable=False),
        sa.Column('text', sa.String(length=2000), nullable=True),
        sa.Column('media_paths', sa.JSON(), nullable=True),
        sa.Column('published', sa.Boolean(), nullable=False),
        sa.Column('editable_until', sa.DateTime(), nullable=False),
        sa.Column('like_count', sa.Integer(), nullable=False),
        sa.Column('comment_count', sa.Integer(), nullable=False),
        sa.Column('is_hidden', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['id_author'], ['user.id_user']),
        sa.ForeignKeyConstraint(['id_mission'], ['mission.id_mission'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['id_submission'], ['submission.id_submission'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id_post'),
        sa.UniqueConstraint('id_submission')
    )
    op.create_index('ix_feed_post_id_author', 'feed_post', ['id_author'])
    op.create_index('ix_feed_post_id_mission', 'feed_post', ['id_mission'])
    op.create_index('ix_feed_post_published', 'feed_post', ['published'])
    op.create_index('ix_feed_post_created_at', 'feed_post', ['created_at'])

    op.create_table(
        'feed_like',
        sa.Column('id_like', sa.Integer(), nullable=False),
        sa.Column('id_post', sa.Integer(), nullable=False),
        sa.Column('id_user', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['id_post'], ['feed_post.id_post'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['id_user'], ['user.id_user']),
        sa.PrimaryKeyConstraint('id_like'),
        sa.UniqueConstraint('id_post', 'id_user', name='feed_like_post_user_key')
    )

    op.create_table(
        'feed_comment',
        sa.Column('id_comment', sa.Integer(), nullable=False),
        sa.Column('id_post', sa.Integer(), nullable=False),
        sa.Column('id_user', sa.Integer(), nullable=False),
        sa.Column('content', sa.String(length=1000), nullable=False),
        sa.Column('is_hidden', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['id_post'], ['feed_post.id_post'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['id_user'], ['user.id_user']),
        sa.PrimaryKeyConstraint('id_comment')
    )
    op.create_index('ix_feed_comment_id_post', 'feed_comment', ['id_post'])

    op.create_table(
        'follow',
        sa.Column('id_follower', sa.Integer(), nullable=False),
        sa.Column('id_target', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['id_follower'], ['user.id_user']),
        sa.ForeignKeyConstraint(['id_target'], ['user.id_user']),
        sa.PrimaryKeyConstraint('id_follower', 'id_target')
    )

    op.create_table(
        'favorite_advertiser',
        sa.Column('id_user', sa.Integer(), nullable=False),
        sa.Column('id_advertiser', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['id_user'], ['user.id_user']),
        sa.ForeignKeyConstraint(['id_advertiser'], ['user.id_user']),
        sa.PrimaryKeyConstraint('id_user', 'id_advertiser')
    )

    op.create_table(
        'notification',
        sa.Column('id_notification', sa.Integer(), nullable=False),
        sa.Column('id_user', sa.Integer(), nullable=False),
        sa.Column('notification_type', enum('notificationtype'), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ['id_user'], ['user.id_user'],
            ondelete='CASCADE', name='notification_id_user_fkey',
        ),
        sa.PrimaryKeyConstraint('id_notification')
    )
    op.create_index('ix_notification_id_user', 'notification', ['id_user'])
    op.create_index('ix_notification_created_at', 'notification', ['created_at'])


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        'notification',
        'favorite_advertiser',
        'follow',
        'feed_comment',
        'feed_like',
        'feed_post',
        'xp_event',
        'rating',
        'message',
        'thread',
        'submission',
        'application',
        'mission',
        'user',
    ):
        op.drop_table(table)

    for name in reversed(list(ENUM_TYPES)):
        ENUM(name=name).drop(op.get_bind(), checkfirst=True)
