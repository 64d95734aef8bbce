"""
Tests for the Users module writers.
"""

import json
from datetime import date

import pytest

from fitness_events.contracts import UserMetricAdded, UserProfileUpdated
from fitness_modules.users import (
    Gender,
    UnitPreference,
    UserNotFoundError,
    UserProfileRow,
    add_user_metric,
    calculate_bmi,
    create_user_profile,
    get_user_metric,
    update_user_profile,
)


@pytest.fixture
async def user_id(session_factory):
    async with session_factory() as session:
        profile = await create_user_profile(session, "ana@example.com", "Ana")
        await session.commit()
        return profile.id


class TestUpdateUserProfile:
    """Tests for profile updates and their outbox records."""

    async def test_update_appends_event_in_same_transaction(self, session_factory, sql_outbox, user_id):
        """Test a committed profile change is announced in the relational outbox."""
        async with session_factory() as session:
            event = await update_user_profile(
                session,
                sql_outbox,
                user_id,
                display_name="Ana Maria",
                unit_preference=UnitPreference.IMPERIAL,
                correlation_id="req-1",
            )
            await session.commit()

        records = await sql_outbox.poll_unprocessed(10, 3)
        assert len(records) == 1
        assert records[0].event_type == "UserProfileUpdated"
        assert records[0].event_id == event.event_id
        assert records[0].correlation_id == "req-1"

        decoded = UserProfileUpdated.from_payload(records[0].payload)
        assert decoded.display_name == "Ana Maria"
        assert decoded.unit_preference == "imperial"

    async def test_rollback_discards_change_and_event(self, session_factory, sql_outbox, user_id):
        """Test a rolled back update leaves neither the change nor the event."""
        async with session_factory() as session:
            await update_user_profile(session, sql_outbox, user_id, display_name="Changed")
            await session.rollback()

        async with session_factory() as session:
            profile = await session.get(UserProfileRow, user_id)
            assert profile.display_name == "Ana"
        assert await sql_outbox.poll_unprocessed(10, 3) == []

    async def test_no_change_no_event(self, session_factory, sql_outbox, user_id):
        """Test an update that changes nothing announces nothing."""
        async with session_factory() as session:
            event = await update_user_profile(session, sql_outbox, user_id, display_name="Ana")
            await session.commit()

        assert event is None
        assert await sql_outbox.poll_unprocessed(10, 3) == []

    async def test_enum_values_are_stored(self, session_factory, sql_outbox, user_id):
        """Test enum and string inputs are normalised to stored values."""
        async with session_factory() as session:
            event = await update_user_profile(
                session, sql_outbox, user_id, gender=Gender.FEMALE, date_of_birth=date(1990, 5, 17)
            )
            await session.commit()

        assert event.gender == "female"
        assert event.date_of_birth == date(1990, 5, 17)

    async def test_unknown_user(self, session_factory, sql_outbox):
        async with session_factory() as session:
            with pytest.raises(UserNotFoundError):
                await update_user_profile(session, sql_outbox, 999, display_name="Nobody")


class TestCalculateBmi:
    """Tests for BMI calculation."""

    def test_metric(self):
        assert calculate_bmi(70.0, 175.0) == 22.86

    def test_imperial(self):
        assert calculate_bmi(154.0, 69.0, UnitPreference.IMPERIAL) == 22.74

    @pytest.mark.parametrize("weight,height", [(None, 175.0), (70.0, None), (0, 175.0), (70.0, -1)])
    def test_missing_or_invalid(self, weight, height):
        assert calculate_bmi(weight, height) is None


class TestAddUserMetric:
    """Tests for metric documents and their outbox records."""

    async def test_document_and_record_written_together(self, redis_client, redis_outbox):
        """Test the metric document and UserMetricAdded record are both stored."""
        event = await add_user_metric(
            redis_client, redis_outbox, user_id=5, metric_date=date(2026, 3, 1), weight=70.0, height=175.0, prefix="test"
        )

        document = await get_user_metric(redis_client, 5, event.user_metric_id, prefix="test")
        assert document["bmi"] == 22.86
        assert document["date"] == "2026-03-01"

        records = await redis_outbox.poll_unprocessed(10, 3)
        assert [r.event_id for r in records] == [event.event_id]
        decoded = UserMetricAdded.from_payload(records[0].payload)
        assert decoded.metric_date == date(2026, 3, 1)
        assert decoded.bmi == 22.86

    async def test_metric_indexed_by_date(self, redis_client, redis_outbox):
        event = await add_user_metric(
            redis_client, redis_outbox, user_id=5, metric_date=date(2026, 3, 1), weight=70.0, prefix="test"
        )
        assert await redis_client.zrange("test:users:metrics:5", 0, -1) == [event.user_metric_id]
        assert json.loads(await redis_client.get(f"test:users:metric:5:{event.user_metric_id}"))["bmi"] is None

    async def test_metric_needs_a_value(self, redis_client, redis_outbox):
        with pytest.raises(ValueError):
            await add_user_metric(redis_client, redis_outbox, user_id=5, metric_date=date(2026, 3, 1), prefix="test")
        assert await redis_outbox.poll_unprocessed(10, 3) == []
