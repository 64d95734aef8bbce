"""
Fixtures for the event engine tests.

`backend` and `inbox` are parametrized over both implementations so every
property is checked against the relational and the document store.
"""

import pytest

from engine_helpers import Backend
from fitness_events.cancellation import CancellationToken


@pytest.fixture(params=["relational", "documents"])
def backend(request, session_factory, redis_client, sql_outbox, redis_outbox):
    if request.param == "relational":
        return Backend(store=sql_outbox, session_factory=session_factory)
    return Backend(store=redis_outbox, redis=redis_client)


@pytest.fixture(params=["relational", "documents"])
def inbox(request, sql_inbox, redis_inbox):
    return sql_inbox if request.param == "relational" else redis_inbox


@pytest.fixture
def token():
    return CancellationToken()
