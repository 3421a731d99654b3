"""Competitor snapshots and the momentum derived from them."""

from datetime import date, datetime, timezone

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


class CompetitorSnapshot(Base):
    """Cumulative public counts of a competitor video on a given day.

    View counts are assumed non-decreasing per video; this is not enforced.
    """

    __tablename__ = "competitor_snapshots"

    video_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("competitor_videos.id"), primary_key=True
    )
    day: Mapped[date] = mapped_column(Date, primary_key=True)
    view_count: Mapped[int] = mapped_column(Integer, default=0)
    like_count: Mapped[int] = mapped_column(Integer, default=0)
    comment_count: Mapped[int] = mapped_column(Integer, default=0)
    captured_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<CompetitorSnapshot {self.video_id} {self.day} views={self.view_count}>"


class MomentumRecord(Base):
    """Velocity and hit flag per (video, day). Later computations overwrite."""

    __tablename__ = "momentum_records"

    video_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("competitor_videos.id"), primary_key=True
    )
    day: Mapped[date] = mapped_column(Date, primary_key=True)
    velocity_24h: Mapped[float] = mapped_column(Float, default=0.0)
    velocity_7d: Mapped[float] = mapped_column(Float, default=0.0)
    momentum_score: Mapped[float] = mapped_column(Float, default=0.0)
    is_hit: Mapped[bool] = mapped_column(Boolean, default=False)
    acceleration: Mapped[float] = mapped_column(Float, default=0.0)
    acceleration_trend: Mapped[str] = mapped_column(String(20), default="stable")
    sustained_days: Mapped[int] = mapped_column(Integer, default=0)
    is_sustained: Mapped[bool] = mapped_column(Boolean, default=False)
    computed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<MomentumRecord {self.video_id} {self.day} v24={self.velocity_24h} hit={self.is_hit}>"
