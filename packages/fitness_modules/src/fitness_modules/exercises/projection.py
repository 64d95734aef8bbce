"""
Exercises module - user preferences projection.

Exercises keeps its own copy of the profile fields it needs (units for
displaying weights, display name for shared routines) in the document
store, fed by UserProfileUpdated.
"""

import logging

import redis.asyncio as redis

from fitcore.redis import redis_key
from fitcore.timeutils import ensure_utc, parse_datetime

from fitness_events.cancellation import CancellationToken
from fitness_events.contracts import UserProfileUpdated

logger = logging.getLogger(__name__)


def preferences_key(prefix: str, user_id: int) -> str:
    return redis_key(prefix, "exercises", "user_preferences", user_id)


class UserPreferencesProjectionHandler:
    """
    Upserts the projection from UserProfileUpdated.

    An event older than the stored projection (by updated_at) is ignored, so
    a replayed or late event never rolls the projection back.
    """

    consumer = "Exercises.UserProfileUpdatedHandler"

    def __init__(self, client: redis.Redis, prefix: str = "fitness"):
        self._redis = client
        self._prefix = prefix

    async def handle(self, event: UserProfileUpdated, cancellation: CancellationToken) -> None:
        key = preferences_key(self._prefix, event.user_id)
        updated_at = ensure_utc(event.updated_at)

        stored = parse_datetime(await self._redis.hget(key, "updated_at"))
        if stored is not None and stored > updated_at:
            logger.info(
                f"Ignoring stale profile update for user {event.user_id}",
                extra={"user_id": event.user_id, "event_id": event.event_id},
            )
            return

        await self._redis.hset(
            key,
            mapping={
                "user_id": str(event.user_id),
                "display_name": event.display_name,
                "gender": event.gender or "",
                "unit_preference": event.unit_preference,
                "updated_at": updated_at.isoformat(),
                "event_id": event.event_id,
            },
        )


async def get_user_preferences(client: redis.Redis, user_id: int, prefix: str = "fitness") -> dict | None:
    data = await client.hgetall(preferences_key(prefix, user_id))
    return data or None
