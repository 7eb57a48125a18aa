"""voting core schema

Revision ID: 0001_voting_core
Revises:
Create Date: 2026-10-17 09:00:00

"""
from alembic import op
import sqlalchemy as sa


revision = '0001_voting_core'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'elections',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('show_in_real_count', sa.Boolean(), nullable=False),
        sa.Column('is_main_in_real_count', sa.Boolean(), nullable=False),
        sa.Column('use_witnesses', sa.Boolean(), nullable=False),
        sa.CheckConstraint("status IN ('pending', 'active')", name='ck_elections_status'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'categories',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('allowed_elections', sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'admin_users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=100), nullable=False),
        sa.Column('password_hash', sa.String(length=200), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username'),
    )
    op.create_table(
        'candidates',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('election_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('vice_candidate_name', sa.String(length=200), nullable=True),
        sa.Column('order_number', sa.Integer(), nullable=False),
        sa.Column('vision', sa.Text(), nullable=True),
        sa.Column('mission', sa.Text(), nullable=True),
        sa.Column('photo_url', sa.String(length=500), nullable=True),
        sa.CheckConstraint('order_number > 0', name='ck_candidates_order_positive'),
        sa.ForeignKeyConstraint(['election_id'], ['elections.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('election_id', 'order_number', name='uq_candidates_election_order'),
    )
    op.create_table(
        'voters',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('category_id', sa.String(length=64), nullable=True),
        sa.Column('password_hash', sa.String(length=200), nullable=False),
        sa.Column('gender', sa.String(length=20), nullable=True),
        sa.Column('has_voted', sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'ballots',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('election_id', sa.String(length=64), nullable=False),
        sa.Column('candidate_id', sa.String(length=64), nullable=False),
        sa.Column('voter_token', sa.String(length=64), nullable=False),
        sa.Column('cast_at_epoch_millis', sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(['candidate_id'], ['candidates.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['election_id'], ['elections.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('election_id', 'voter_token', name='uq_ballots_election_voter_token'),
    )


def downgrade():
    op.drop_table('ballots')
    op.drop_table('voters')
    op.drop_table('candidates')
    op.drop_table('admin_users')
    op.drop_table('categories')
    op.drop_table('elections')
