"""
Workouts module - latest body metric snapshot.

Workout calculations (calories, relative load) need the user's current
weight; the Workouts module keeps it in its own relational table rather
than reading the Users module's documents.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fitcore.timeutils import ensure_utc

from fitness_events.cancellation import CancellationToken
from fitness_events.contracts import UserMetricAdded
from fitness_modules.workouts.models import LatestUserMetricRow

logger = logging.getLogger(__name__)


class LatestUserMetricHandler:
    """
    Keeps the newest metric per user, ordered by (metric_date, created_at).

    Back-dated entries arriving later do not replace a newer snapshot.
    """

    consumer = "Workouts.UserMetricAddedHandler"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def handle(self, event: UserMetricAdded, cancellation: CancellationToken) -> None:
        recorded_at = ensure_utc(event.created_at)

        async with self._session_factory() as session:
            snapshot = await session.get(LatestUserMetricRow, event.user_id)
            if snapshot is None:
                snapshot = LatestUserMetricRow(user_id=event.user_id)
                session.add(snapshot)
            elif (snapshot.metric_date, ensure_utc(snapshot.recorded_at)) > (event.metric_date, recorded_at):
                logger.debug(
                    f"Metric {event.user_metric_id} is older than the snapshot for user {event.user_id}",
                    extra={"user_id": event.user_id, "event_id": event.event_id},
                )
                return

            snapshot.user_metric_id = event.user_metric_id
            snapshot.metric_date = event.metric_date
            snapshot.weight = event.weight
            snapshot.height = event.height
            snapshot.bmi = event.bmi
            snapshot.recorded_at = recorded_at
            snapshot.event_id = event.event_id
            await session.commit()


async def get_latest_metric(session: AsyncSession, user_id: int) -> LatestUserMetricRow | None:
    return await session.get(LatestUserMetricRow, user_id)
