"""Initial database schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 10:00:00.000000

Creates all tables for Guess Who Now:
- users: accounts
- word_packs: word pair catalog
- rooms: game rooms addressed by short numeric codes
- players: room memberships with secret role and round state
- votes: one vote per voter per round
- room_events: per-room change feed
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None

MYSQL_TABLE_ARGS = dict(
    mysql_engine='InnoDB',
    mysql_charset='utf8mb4',
    mysql_collate='utf8mb4_unicode_ci',
)


def upgrade() -> None:
    """Create all tables, indexes and uniqueness constraints"""

    # Create users table
    op.create_table('users',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('username', sa.String(50), nullable=False),
        sa.Column('email', sa.String(100), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        **MYSQL_TABLE_ARGS
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # Create word_packs table
    op.create_table('word_packs',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('title', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('type', sa.Enum('curated', 'custom', 'ai', 'community', name='wordpacktype'),
                  nullable=False, server_default='curated'),
        sa.Column('difficulty', sa.Enum('easy', 'medium', 'hard', name='wordpackdifficulty'),
                  nullable=False, server_default='medium'),
        sa.Column('language', sa.String(10), nullable=False, server_default='en'),
        sa.Column('content', sa.JSON(), nullable=False),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('owner_id', sa.String(36), nullable=True),
        sa.Column('usage_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        **MYSQL_TABLE_ARGS
    )
    op.create_index('ix_word_packs_id', 'word_packs', ['id'])
    op.create_index('ix_word_packs_created_at', 'word_packs', ['created_at'])

    # Create rooms table
    op.create_table('rooms',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('room_code', sa.String(12), nullable=False),
        sa.Column('host_id', sa.String(36), nullable=False),
        sa.Column('max_players', sa.Integer(), nullable=False, server_default='8'),
        sa.Column('round_limit', sa.Integer(), nullable=True),
        sa.Column('config', sa.JSON(), nullable=False),
        sa.Column('word_pack_id', sa.String(64), nullable=True),
        sa.Column('status', sa.Enum('waiting', 'playing', 'finished', name='roomstatus'),
                  nullable=False, server_default='waiting'),
        sa.Column('current_round', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('civilian_word', sa.String(100), nullable=True),
        sa.Column('undercover_word', sa.String(100), nullable=True),
        sa.Column('speaking_order', sa.JSON(), nullable=False),
        sa.Column('outcome', sa.Enum('civilians', 'undercover', 'mrx', 'draw', 'abandoned',
                                     name='roomoutcome'), nullable=True),
        sa.Column('last_eliminated_player_id', sa.String(36), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('finished_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['host_id'], ['users.id']),
        sa.ForeignKeyConstraint(['word_pack_id'], ['word_packs.id']),
        sa.PrimaryKeyConstraint('id'),
        **MYSQL_TABLE_ARGS
    )
    op.create_index('ix_rooms_id', 'rooms', ['id'])
    op.create_index('ix_rooms_room_code', 'rooms', ['room_code'])
    op.create_index('ix_rooms_code_created', 'rooms', ['room_code', 'created_at'])

    # Create players table
    op.create_table('players',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('room_id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('username', sa.String(50), nullable=False),
        sa.Column('seat', sa.Integer(), nullable=False),
        sa.Column('role', sa.Enum('civilian', 'undercover', 'mrx', name='playerrole'),
                  nullable=False, server_default='civilian'),
        sa.Column('word', sa.String(100), nullable=True),
        sa.Column('is_alive', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('eliminated_round', sa.Integer(), nullable=True),
        sa.Column('has_given_clue', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('clue', sa.Text(), nullable=True),
        sa.Column('has_guessed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('joined_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['room_id'], ['rooms.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('room_id', 'user_id', name='uq_player_room_user'),
        **MYSQL_TABLE_ARGS
    )
    op.create_index('ix_players_id', 'players', ['id'])
    op.create_index('ix_players_room_id', 'players', ['room_id'])

    # Create votes table
    op.create_table('votes',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('room_id', sa.String(36), nullable=False),
        sa.Column('voter_id', sa.String(36), nullable=False),
        sa.Column('target_id', sa.String(36), nullable=False),
        sa.Column('round_number', sa.Integer(), nullable=False),
        sa.Column('seq', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['room_id'], ['rooms.id']),
        sa.ForeignKeyConstraint(['voter_id'], ['players.id']),
        sa.ForeignKeyConstraint(['target_id'], ['players.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('room_id', 'voter_id', 'round_number', name='uq_vote_room_voter_round'),
        **MYSQL_TABLE_ARGS
    )
    op.create_index('ix_votes_id', 'votes', ['id'])
    op.create_index('ix_votes_room_id', 'votes', ['room_id'])

    # Create room_events table
    op.create_table('room_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('room_id', sa.String(36), nullable=False),
        sa.Column('seq', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(40), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['room_id'], ['rooms.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('room_id', 'seq', name='uq_room_event_seq'),
        **MYSQL_TABLE_ARGS
    )
    op.create_index('ix_room_events_room_id', 'room_events', ['room_id'])


def downgrade() -> None:
    """Drop all tables"""
    op.drop_table('room_events')
    op.drop_table('votes')
    op.drop_table('players')
    op.drop_table('rooms')
    op.drop_table('word_packs')
    op.drop_table('users')
