"""Daily fact tables keyed by (entity, day)."""

from datetime import date

from sqlalchemy import Date, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


class ChannelDayMetric(Base):
    """One row per (channel, calendar day). Re-synced values overwrite."""

    __tablename__ = "channel_day_metrics"

    channel_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("channels.id"), primary_key=True
    )
    day: Mapped[date] = mapped_column(Date, primary_key=True)
    views: Mapped[int] = mapped_column(Integer, default=0)
    watch_time_minutes: Mapped[float] = mapped_column(Float, default=0.0)
    avg_view_duration_sec: Mapped[float] = mapped_column(Float, default=0.0)
    impressions: Mapped[int] = mapped_column(Integer, default=0)
    ctr: Mapped[float] = mapped_column(Float, default=0.0)
    subscribers_gained: Mapped[int] = mapped_column(Integer, default=0)
    subscribers_lost: Mapped[int] = mapped_column(Integer, default=0)
    likes: Mapped[int] = mapped_column(Integer, default=0)
    comments: Mapped[int] = mapped_column(Integer, default=0)
    shares: Mapped[int] = mapped_column(Integer, default=0)

    def __repr__(self) -> str:
        return f"<ChannelDayMetric {self.channel_id} {self.day} views={self.views}>"


class VideoDayMetric(Base):
    """One row per (video, calendar day). Re-synced values overwrite."""

    __tablename__ = "video_day_metrics"

    video_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("videos.id"), primary_key=True
    )
    day: Mapped[date] = mapped_column(Date, primary_key=True)
    views: Mapped[int] = mapped_column(Integer, default=0)
    watch_time_minutes: Mapped[float] = mapped_column(Float, default=0.0)
    avg_view_duration_sec: Mapped[float] = mapped_column(Float, default=0.0)
    impressions: Mapped[int] = mapped_column(Integer, default=0)
    ctr: Mapped[float] = mapped_column(Float, default=0.0)
    likes: Mapped[int] = mapped_column(Integer, default=0)
    comments: Mapped[int] = mapped_column(Integer, default=0)
    shares: Mapped[int] = mapped_column(Integer, default=0)

    def __repr__(self) -> str:
        return f"<VideoDayMetric {self.video_id} {self.day} views={self.views}>"
