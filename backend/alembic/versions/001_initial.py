"""Initial migration - create track tables

Revision ID: 001_initial
Revises:
Create Date: 2026-10-16

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create gpx_tracks table
    op.create_table(
        'gpx_tracks',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('filename', sa.String(255), nullable=False, unique=True),
        sa.Column('name', sa.String(255), nullable=False, server_default=''),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('distance', sa.Float(), nullable=False, server_default='0'),
        sa.Column('duration', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('elevation_gain', sa.Float(), nullable=False, server_default='0'),
        sa.Column('elevation_loss', sa.Float(), nullable=False, server_default='0'),
        sa.Column('max_elevation', sa.Float(), nullable=False, server_default='0'),
        sa.Column('min_elevation', sa.Float(), nullable=False, server_default='0'),
        sa.Column('point_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('start_time', sa.DateTime(), nullable=True),
        sa.Column('end_time', sa.DateTime(), nullable=True),
        sa.Column('north', sa.Float(), nullable=False),
        sa.Column('south', sa.Float(), nullable=False),
        sa.Column('east', sa.Float(), nullable=False),
        sa.Column('west', sa.Float(), nullable=False),
        sa.Column('crosses_antimeridian', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('geohash', sa.String(12), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    for column in ('distance', 'duration', 'north', 'south', 'east', 'west',
                   'geohash', 'created_at'):
        op.create_index(f'ix_gpx_tracks_{column}', 'gpx_tracks', [column])

    # Create track_points table
    op.create_table(
        'track_points',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('track_id', sa.Integer(),
                  sa.ForeignKey('gpx_tracks.id', ondelete='CASCADE'), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('elevation', sa.Float(), nullable=True),
        sa.Column('time', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_track_points_track_id', 'track_points', ['track_id'])


def downgrade() -> None:
    op.drop_index('ix_track_points_track_id', table_name='track_points')
    op.drop_table('track_points')
    for column in ('distance', 'duration', 'north', 'south', 'east', 'west',
                   'geohash', 'created_at'):
        op.drop_index(f'ix_gpx_tracks_{column}', table_name='gpx_tracks')
    op.drop_table('gpx_tracks')
