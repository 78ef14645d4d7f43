"""create users, tokens, workspaces, workspace_members, blogs

Revision ID: 3f1c9a2d7b10
Revises:
Create Date: 2026-10-19 10:12:44.318202
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a2d7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column(
            'role',
            sa.Enum('admin', 'customer', name='role', native_enum=False, length=16),
            nullable=False,
        ),
        sa.Column('verified_at', sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'tokens',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('tokenable_id', sa.String(length=32), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column(
            'type',
            sa.Enum(
                'access', 'email_verification', 'password_reset',
                name='tokentype', native_enum=False, length=32,
            ),
            nullable=False,
        ),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('hash', sa.String(length=64), nullable=False),
        sa.Column('abilities', sa.Text(), nullable=False),
        sa.Column('last_used_at', sa.DateTime(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_tokens_tokenable_id', 'tokens', ['tokenable_id'])

    op.create_table(
        'workspaces',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'workspace_members',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column('user_id', sa.String(length=32), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column(
            'workspace_id', sa.String(length=32),
            sa.ForeignKey('workspaces.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column(
            'role',
            sa.Enum(
                'owner', 'manager', 'editor', 'viewer',
                name='workspacememberrole', native_enum=False, length=16,
            ),
            nullable=False,
        ),
        sa.Column('joined_at', sa.DateTime(), nullable=True),
        sa.Column('left_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'workspace_id', name='uq_workspace_members_user_workspace'),
    )
    op.create_index('ix_workspace_members_user_id', 'workspace_members', ['user_id'])
    op.create_index('ix_workspace_members_workspace_id', 'workspace_members', ['workspace_id'])

    op.create_table(
        'blogs',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column(
            'workspace_id', sa.String(length=32),
            sa.ForeignKey('workspaces.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column(
            'author_id', sa.String(length=32),
            sa.ForeignKey('workspace_members.id', ondelete='CASCADE'), nullable=True,
        ),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column(
            'status',
            sa.Enum('draft', 'published', 'archived', name='blogstatus', native_enum=False, length=16),
            nullable=False,
        ),
        *_timestamps(),
    )
    op.create_index('ix_blogs_workspace_id', 'blogs', ['workspace_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_blogs_workspace_id', table_name='blogs')
    op.drop_table('blogs')
    op.drop_index('ix_workspace_members_workspace_id', table_name='workspace_members')
    op.drop_index('ix_workspace_members_user_id', table_name='workspace_members')
    op.drop_table('workspace_members')
    op.drop_table('workspaces')
    op.drop_index('ix_tokens_tokenable_id', table_name='tokens')
    op.drop_table('tokens')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
