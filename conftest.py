from types import SimpleNamespace

import pytest
from rest_framework.test import APIClient

from infrastructure.container import container


@pytest.fixture
def services():
    """Container wired to in-memory payment, notification and email adapters."""
    container.reset()
    payment = container.payment("mock")
    notifications = container.notifications("mock")
    email = container.email("mock")
    yield SimpleNamespace(
        payment=payment,
        notifications=notifications,
        email=email,
        orders=container.order_service(),
        ledger=container.ledger_service(),
    )
    container.reset()


@pytest.fixture
def api_client():
    return APIClient()
