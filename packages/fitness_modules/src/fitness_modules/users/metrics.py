"""
Users module - body metrics in the document backend (Redis).

A metric document and its UserMetricAdded outbox record are written by one
MULTI/EXEC pipeline, so either both exist or neither does.
"""

import json
import logging
from datetime import date
from uuid import uuid4

import redis.asyncio as redis

from fitcore.redis import redis_key

from fitness_events.contracts import OutboxRecord, UserMetricAdded
from fitness_events.outbox.base import BackendStore
from fitness_modules.users.models import UnitPreference

logger = logging.getLogger(__name__)

LBS_TO_KG = 0.453592
INCHES_TO_METERS = 0.0254


def calculate_bmi(
    weight: float | None,
    height: float | None,
    unit_preference: UnitPreference | str = UnitPreference.METRIC,
) -> float | None:
    """
    Body mass index rounded to 2 decimals.

    Metric input is kg and cm, imperial is lbs and inches. Missing or
    non-positive values give None.
    """
    if not weight or not height or weight <= 0 or height <= 0:
        return None

    if UnitPreference(unit_preference) == UnitPreference.IMPERIAL:
        weight_kg = weight * LBS_TO_KG
        height_m = height * INCHES_TO_METERS
    else:
        weight_kg = weight
        height_m = height / 100

    return round(weight_kg / (height_m * height_m), 2)


def metric_key(prefix: str, user_id: int, user_metric_id: str) -> str:
    return redis_key(prefix, "users", "metric", user_id, user_metric_id)


def metric_index_key(prefix: str, user_id: int) -> str:
    return redis_key(prefix, "users", "metrics", user_id)


async def add_user_metric(
    client: redis.Redis,
    outbox: BackendStore,
    user_id: int,
    metric_date: date,
    weight: float | None = None,
    height: float | None = None,
    unit_preference: UnitPreference | str = UnitPreference.METRIC,
    notes: str | None = None,
    prefix: str = "fitness",
    correlation_id: str | None = None,
) -> UserMetricAdded:
    """
    Record a body metric and announce it.

    Raises:
        ValueError: Neither weight nor height given
    """
    if weight is None and height is None:
        raise ValueError("A metric needs a weight or a height")

    event = UserMetricAdded(
        user_metric_id=uuid4().hex,
        user_id=user_id,
        metric_date=metric_date,
        weight=weight,
        height=height,
        bmi=calculate_bmi(weight, height, unit_preference),
        correlation_id=correlation_id,
    )
    document = {
        "id": event.user_metric_id,
        "user_id": user_id,
        "date": metric_date.isoformat(),
        "weight": weight,
        "height": height,
        "bmi": event.bmi,
        "unit_preference": UnitPreference(unit_preference).value,
        "notes": notes,
        "created_at": event.created_at.isoformat(),
    }

    async with client.pipeline(transaction=True) as pipe:
        pipe.set(metric_key(prefix, user_id, event.user_metric_id), json.dumps(document))
        pipe.zadd(metric_index_key(prefix, user_id), {event.user_metric_id: metric_date.toordinal()})
        await outbox.append(pipe, OutboxRecord.from_event(event))
        await pipe.execute()

    logger.info(
        f"Metric {event.user_metric_id} added for user {user_id}",
        extra={"user_id": user_id, "event_id": event.event_id, "bmi": event.bmi},
    )
    return event


async def get_user_metric(client: redis.Redis, user_id: int, user_metric_id: str, prefix: str = "fitness") -> dict | None:
    raw = await client.get(metric_key(prefix, user_id, user_metric_id))
    return json.loads(raw) if raw is not None else None
