"""Derived analytics: quality scores, growth curves and trained forecast models."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


class QualityScore(Base):
    """Current composite quality score of a video. No history is kept."""

    __tablename__ = "quality_scores"

    video_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    score: Mapped[float] = mapped_column(Float, default=0.0)
    velocity_score: Mapped[float] = mapped_column(Float, default=0.0)
    efficiency_score: Mapped[float] = mapped_column(Float, default=0.0)
    conversion_score: Mapped[float] = mapped_column(Float, default=0.0)
    explanation: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    computed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<QualityScore {self.video_id}={self.score:.1f}>"


class GrowthCurvePoint(Base):
    """Normalized cumulative-views quantiles for one day of a fitted curve.

    Rows for a (cluster, bucket) are replaced as a whole on every refit.
    """

    __tablename__ = "growth_curve_points"

    cluster_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    duration_bucket: Mapped[str] = mapped_column(String(20), primary_key=True)
    day: Mapped[int] = mapped_column(Integer, primary_key=True)
    median_pct: Mapped[float] = mapped_column(Float, default=0.0)
    p25_pct: Mapped[float] = mapped_column(Float, default=0.0)
    p75_pct: Mapped[float] = mapped_column(Float, default=0.0)
    sample_size: Mapped[int] = mapped_column(Integer, default=0)
    fitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<GrowthCurvePoint {self.cluster_id}/{self.duration_bucket} d{self.day}={self.median_pct:.3f}>"


class ForecastModelRecord(Base):
    """A trained model variant. At most one active row per model_type."""

    __tablename__ = "forecast_models"

    model_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    model_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    version: Mapped[str] = mapped_column(String(20), nullable=False, default="1.0")
    trained_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    metrics: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        state = "active" if self.is_active else "inactive"
        return f"<ForecastModelRecord {self.model_id} ({state})>"
