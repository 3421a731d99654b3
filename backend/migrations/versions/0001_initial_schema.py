"""initial channel analytics schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Channels and uploads
    op.create_table(
        'channels',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('subscriber_count', sa.Integer(), nullable=True),
        sa.Column('video_count', sa.Integer(), nullable=True),
        sa.Column('view_count', sa.Integer(), nullable=True),
        sa.Column('thumbnail_url', sa.String(1000), nullable=True),
        sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'competitor_channels',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('subscriber_count', sa.Integer(), nullable=True),
        sa.Column('added_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'videos',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('channel_id', sa.String(64), nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration_sec', sa.Integer(), nullable=True),
        sa.Column('thumbnail_url', sa.String(1000), nullable=True),
        sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['channel_id'], ['channels.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_videos_channel_id', 'videos', ['channel_id'])
    op.create_table(
        'competitor_videos',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('channel_id', sa.String(64), nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration_sec', sa.Integer(), nullable=True),
        sa.Column('view_count', sa.Integer(), nullable=True),
        sa.Column('like_count', sa.Integer(), nullable=True),
        sa.Column('comment_count', sa.Integer(), nullable=True),
        sa.Column('last_synced_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['channel_id'], ['competitor_channels.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_competitor_videos_channel_id', 'competitor_videos', ['channel_id'])

    # Daily facts, one row per entity and day
    op.create_table(
        'channel_day_metrics',
        sa.Column('channel_id', sa.String(64), nullable=False),
        sa.Column('day', sa.Date(), nullable=False),
        sa.Column('views', sa.Integer(), nullable=True),
        sa.Column('watch_time_minutes', sa.Float(), nullable=True),
        sa.Column('avg_view_duration_sec', sa.Float(), nullable=True),
        sa.Column('impressions', sa.Integer(), nullable=True),
        sa.Column('ctr', sa.Float(), nullable=True),
        sa.Column('subscribers_gained', sa.Integer(), nullable=True),
        sa.Column('subscribers_lost', sa.Integer(), nullable=True),
        sa.Column('likes', sa.Integer(), nullable=True),
        sa.Column('comments', sa.Integer(), nullable=True),
        sa.Column('shares', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['channel_id'], ['channels.id']),
        sa.PrimaryKeyConstraint('channel_id', 'day')
    )
    op.create_table(
        'video_day_metrics',
        sa.Column('video_id', sa.String(64), nullable=False),
        sa.Column('day', sa.Date(), nullable=False),
        sa.Column('views', sa.Integer(), nullable=True),
        sa.Column('watch_time_minutes', sa.Float(), nullable=True),
        sa.Column('avg_view_duration_sec', sa.Float(), nullable=True),
        sa.Column('impressions', sa.Integer(), nullable=True),
        sa.Column('ctr', sa.Float(), nullable=True),
        sa.Column('likes', sa.Integer(), nullable=True),
        sa.Column('comments', sa.Integer(), nullable=True),
        sa.Column('shares', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['video_id'], ['videos.id']),
        sa.PrimaryKeyConstraint('video_id', 'day')
    )
    op.create_table(
        'competitor_snapshots',
        sa.Column('video_id', sa.String(64), nullable=False),
        sa.Column('day', sa.Date(), nullable=False),
        sa.Column('view_count', sa.Integer(), nullable=True),
        sa.Column('like_count', sa.Integer(), nullable=True),
        sa.Column('comment_count', sa.Integer(), nullable=True),
        sa.Column('captured_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['video_id'], ['competitor_videos.id']),
        sa.PrimaryKeyConstraint('video_id', 'day')
    )
    op.create_table(
        'momentum_records',
        sa.Column('video_id', sa.String(64), nullable=False),
        sa.Column('day', sa.Date(), nullable=False),
        sa.Column('velocity_24h', sa.Float(), nullable=True),
        sa.Column('velocity_7d', sa.Float(), nullable=True),
        sa.Column('momentum_score', sa.Float(), nullable=True),
        sa.Column('is_hit', sa.Boolean(), nullable=True),
        sa.Column('acceleration', sa.Float(), nullable=True),
        sa.Column('acceleration_trend', sa.String(20), nullable=True),
        sa.Column('sustained_days', sa.Integer(), nullable=True),
        sa.Column('is_sustained', sa.Boolean(), nullable=True),
        sa.Column('computed_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['video_id'], ['competitor_videos.id']),
        sa.PrimaryKeyConstraint('video_id', 'day')
    )

    # Derived analytics
    op.create_table(
        'quality_scores',
        sa.Column('video_id', sa.String(64), nullable=False),
        sa.Column('score', sa.Float(), nullable=True),
        sa.Column('velocity_score', sa.Float(), nullable=True),
        sa.Column('efficiency_score', sa.Float(), nullable=True),
        sa.Column('conversion_score', sa.Float(), nullable=True),
        sa.Column('explanation', sa.JSON(), nullable=False),
        sa.Column('computed_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('video_id')
    )
    op.create_table(
        'growth_curve_points',
        sa.Column('cluster_id', sa.Integer(), nullable=False),
        sa.Column('duration_bucket', sa.String(20), nullable=False),
        sa.Column('day', sa.Integer(), nullable=False),
        sa.Column('median_pct', sa.Float(), nullable=True),
        sa.Column('p25_pct', sa.Float(), nullable=True),
        sa.Column('p75_pct', sa.Float(), nullable=True),
        sa.Column('sample_size', sa.Integer(), nullable=True),
        sa.Column('fitted_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('cluster_id', 'duration_bucket', 'day')
    )
    op.create_table(
        'forecast_models',
        sa.Column('model_id', sa.String(100), nullable=False),
        sa.Column('model_type', sa.String(50), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('version', sa.String(20), nullable=False),
        sa.Column('trained_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('metrics', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('model_id')
    )
    op.create_index('ix_forecast_models_model_type', 'forecast_models', ['model_type'])

    # Pipeline bookkeeping
    op.create_table(
        'sync_runs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('status', sa.Enum('RUNNING', 'SUCCESS', 'FAILED', name='syncstatus'), nullable=False),
        sa.Column('checkpoint', sa.String(50), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('finished_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('error_code', sa.String(50), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'perf_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('run_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('duration_ms', sa.Float(), nullable=False),
        sa.Column('meta', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_perf_events_run_id', 'perf_events', ['run_id'])

    # Insights and alerts
    op.create_table(
        'insights',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('run_id', sa.Integer(), nullable=False),
        sa.Column('insight_type', sa.String(100), nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('evidence', sa.JSON(), nullable=False),
        sa.Column('entity_id', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['run_id'], ['sync_runs.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_insights_run_id', 'insights', ['run_id'])
    op.create_index('ix_insights_insight_type', 'insights', ['insight_type'])
    op.create_table(
        'alerts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('run_id', sa.Integer(), nullable=False),
        sa.Column('insight_id', sa.Integer(), nullable=True),
        sa.Column('alert_type', sa.String(100), nullable=False),
        sa.Column('severity', sa.String(20), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('entity_id', sa.String(64), nullable=True),
        sa.Column('action', sa.JSON(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['run_id'], ['sync_runs.id']),
        sa.ForeignKeyConstraint(['insight_id'], ['insights.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_alerts_run_id', 'alerts', ['run_id'])


def downgrade() -> None:
    op.drop_table('alerts')
    op.drop_table('insights')
    op.drop_table('perf_events')
    op.drop_table('sync_runs')
    op.execute("DROP TYPE IF EXISTS syncstatus")
    op.drop_table('forecast_models')
    op.drop_table('growth_curve_points')
    op.drop_table('quality_scores')
    op.drop_table('momentum_records')
    op.drop_table('competitor_snapshots')
    op.drop_table('video_day_metrics')
    op.drop_table('channel_day_metrics')
    op.drop_table('competitor_videos')
    op.drop_table('videos')
    op.drop_table('competitor_channels')
    op.drop_table('channels')
