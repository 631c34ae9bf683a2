from alembic import op
import sqlalchemy as sa

revision = '0001_init'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table('users',
        sa.Column('athlete_id', sa.BigInteger, primary_key=True, autoincrement=False),
        sa.Column('address', sa.String(64)),
        sa.Column('access_token', sa.String(512)),
        sa.Column('refresh_token', sa.String(512)),
        sa.Column('access_expires_at', sa.BigInteger),
        sa.Column('linked_at', sa.BigInteger, nullable=False),
    )
    op.create_index('ix_users_address', 'users', ['address'])

    op.create_table('rewards',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('address', sa.String(64), nullable=False),
        sa.Column('athlete_id', sa.BigInteger, nullable=False),
        sa.Column('activity_id', sa.BigInteger, nullable=False),
        sa.Column('reward_day', sa.String(8), nullable=False),
        sa.Column('activity_at', sa.String(64), nullable=False),
        sa.Column('is_processed', sa.Boolean, nullable=False, server_default='false'),
        sa.Column('is_confirmed', sa.Boolean, nullable=False, server_default='false'),
    )
    op.create_index('ix_rewards_athlete_id', 'rewards', ['athlete_id'])
    op.create_index('idx_rewards_day', 'rewards', ['reward_day'])
    op.create_index('idx_rewards_unprocessed', 'rewards', ['is_processed'])

def downgrade():
    op.drop_index('idx_rewards_unprocessed', table_name='rewards')
    op.drop_index('idx_rewards_day', table_name='rewards')
    op.drop_index('ix_rewards_athlete_id', table_name='rewards')
    op.drop_table('rewards')
    op.drop_index('ix_users_address', table_name='users')
    op.drop_table('users')
