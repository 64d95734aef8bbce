"""
Users module - profile writes against the relational backend.

Every profile change appends a UserProfileUpdated record to the relational
outbox in the caller's session. The caller owns the transaction: if it
rolls back, neither the profile change nor the event exists.
"""

import logging
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from fitcore.timeutils import utcnow

from fitness_events.contracts import OutboxRecord, UserProfileUpdated
from fitness_events.outbox.base import BackendStore
from fitness_modules.users.models import Gender, UnitPreference, UserProfileRow

logger = logging.getLogger(__name__)


class UserNotFoundError(Exception):
    def __init__(self, user_id: int):
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


async def create_user_profile(
    session: AsyncSession,
    email: str,
    display_name: str,
    unit_preference: UnitPreference | str = UnitPreference.METRIC,
    gender: Gender | str | None = None,
    date_of_birth: date | None = None,
) -> UserProfileRow:
    """Add a new profile to the session (flushed, not committed)."""
    profile = UserProfileRow(
        email=email,
        display_name=display_name,
        unit_preference=UnitPreference(unit_preference).value,
        gender=Gender(gender).value if gender is not None else None,
        date_of_birth=date_of_birth,
    )
    session.add(profile)
    await session.flush()
    return profile


async def update_user_profile(
    session: AsyncSession,
    outbox: BackendStore,
    user_id: int,
    *,
    display_name: str | None = None,
    gender: Gender | str | None = None,
    date_of_birth: date | None = None,
    unit_preference: UnitPreference | str | None = None,
    correlation_id: str | None = None,
) -> UserProfileUpdated | None:
    """
    Apply profile changes and announce them.

    Fields left as None are not changed.

    Args:
        session: Open session; the caller commits
        outbox: Relational outbox store
        user_id: Profile to update

    Returns:
        The appended event, or None when nothing actually changed

    Raises:
        UserNotFoundError: No profile with this id
    """
    profile = await session.get(UserProfileRow, user_id)
    if profile is None:
        raise UserNotFoundError(user_id)

    requested = {
        "display_name": display_name,
        "gender": Gender(gender).value if gender is not None else None,
        "date_of_birth": date_of_birth,
        "unit_preference": UnitPreference(unit_preference).value if unit_preference is not None else None,
    }
    changes = {
        field: value
        for field, value in requested.items()
        if value is not None and getattr(profile, field) != value
    }
    if not changes:
        logger.debug(f"Profile {user_id} unchanged, no event", extra={"user_id": user_id})
        return None

    for field, value in changes.items():
        setattr(profile, field, value)
    profile.updated_at = utcnow()

    event = UserProfileUpdated(
        user_id=profile.id,
        display_name=profile.display_name,
        gender=profile.gender,
        date_of_birth=profile.date_of_birth,
        unit_preference=profile.unit_preference,
        updated_at=profile.updated_at,
        correlation_id=correlation_id,
    )
    await outbox.append(session, OutboxRecord.from_event(event))

    logger.info(
        f"Profile {user_id} updated ({', '.join(sorted(changes))})",
        extra={"user_id": user_id, "event_id": event.event_id},
    )
    return event
