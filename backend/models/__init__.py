"""Database models."""

from database import Base

# Channels and uploads
from models.channel import Channel, CompetitorChannel
from models.video import Video, CompetitorVideo

# Daily facts
from models.day_metric import ChannelDayMetric, VideoDayMetric
from models.competitor import CompetitorSnapshot, MomentumRecord

# Derived analytics
from models.derived import QualityScore, GrowthCurvePoint, ForecastModelRecord
from models.insight import Insight, Alert

# Pipeline bookkeeping
from models.sync_run import SyncRun, SyncStatus, PerfEvent

__all__ = [
    # Base
    "Base",
    # Channels and uploads
    "Channel",
    "CompetitorChannel",
    "Video",
    "CompetitorVideo",
    # Daily facts
    "ChannelDayMetric",
    "VideoDayMetric",
    "CompetitorSnapshot",
    "MomentumRecord",
    # Derived analytics
    "QualityScore",
    "GrowthCurvePoint",
    "ForecastModelRecord",
    "Insight",
    "Alert",
    # Pipeline bookkeeping
    "SyncRun",
    "SyncStatus",
    "PerfEvent",
]
