from sqlalchemy import BigInteger, Column, Date, DateTime, Float, String

from fitcore.timeutils import utcnow

from fitness_events.persistence.models import EventsBase


class LatestUserMetricRow(EventsBase):
    """Workouts' snapshot of each user's most recent body metric."""

    __tablename__ = "workouts_latest_user_metrics"

    user_id = Column(BigInteger, primary_key=True, autoincrement=False)
    user_metric_id = Column(String(64), nullable=False)
    metric_date = Column(Date, nullable=False)
    weight = Column(Float, nullable=True)
    height = Column(Float, nullable=True)
    bmi = Column(Float, nullable=True)
    recorded_at = Column(DateTime(timezone=True), nullable=False)
    event_id = Column(String(36), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
