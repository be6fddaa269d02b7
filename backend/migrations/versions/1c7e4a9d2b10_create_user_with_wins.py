"""create user table with leaderboard columns

Revision ID: 1c7e4a9d2b10
Revises:
Create Date: 2026-10-19 00:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '1c7e4a9d2b10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'user' not in set(insp.get_table_names()):
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('password_hash', sa.String(length=256), nullable=False),
            sa.Column('wins', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('last_win_at', sa.DateTime(), nullable=True),
        )
        op.create_index('ix_user_username', 'user', ['username'], unique=True)
        return

    # Pre-existing accounts table: add the leaderboard columns only
    cols = {c['name'] for c in insp.get_columns('user')}
    with op.batch_alter_table('user') as batch_op:
        if 'wins' not in cols:
            batch_op.add_column(sa.Column('wins', sa.Integer(), nullable=False, server_default='0'))
        if 'last_win_at' not in cols:
            batch_op.add_column(sa.Column('last_win_at', sa.DateTime(), nullable=True))


def downgrade():
    op.drop_index('ix_user_username', table_name='user')
    op.drop_table('user')
