"""
Users module tables (relational backend).
"""

from enum import Enum

from sqlalchemy import Column, Date, DateTime, String

from fitcore.timeutils import utcnow

from fitness_events.persistence.models import EventsBase, IdentityType


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    PREFER_NOT_TO_SAY = "prefer_not_to_say"

    def __str__(self) -> str:
        return self.value


class UnitPreference(str, Enum):
    METRIC = "metric"  # kg, cm
    IMPERIAL = "imperial"  # lbs, inches

    def __str__(self) -> str:
        return self.value


class UserProfileRow(EventsBase):
    """User profile owned by the Users module."""

    __tablename__ = "user_profiles"

    id = Column(IdentityType, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    display_name = Column(String(255), nullable=False)
    gender = Column(String(32), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    unit_preference = Column(String(16), nullable=False, default=UnitPreference.METRIC.value)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
