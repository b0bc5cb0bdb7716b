"""
Shared fixtures.

Users are created straight through the manager; API tests authenticate with
force_authenticate so no OTP round trip is needed.
"""

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from authentication.models import User, UserRole
from tickets.models import TicketType
from tickets.workflow import TicketWorkflow


@pytest.fixture(autouse=True)
def _isolated_environment(settings, tmp_path):
    """Uploads go to a temp dir and throttle counters start from zero."""
    settings.MEDIA_ROOT = str(tmp_path / 'uploads')
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_user(db):
    counter = {'n': 0}

    def _make_user(role, name=None, **extra):
        counter['n'] += 1
        email = extra.pop('email', f"{role.lower()}.{counter['n']}@race.local")
        return User.objects.create_user(
            email,
            name=name or role.replace('_', ' ').title(),
            role=role,
            **extra
        )

    return _make_user


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for():
    def _client_for(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    return _client_for


@pytest.fixture
def sport_marshal(make_user):
    return make_user(UserRole.SPORT_MARSHAL, name='Sport Marshal', marshal_id='M-1042', mobile='555-0100')


@pytest.fixture
def control_op(make_user):
    return make_user(UserRole.CONTROL_OP_TEAM, name='Control Op')


@pytest.fixture
def chief_of_control(make_user):
    return make_user(UserRole.CHIEF_OF_CONTROL, name='Chief Control')


@pytest.fixture
def admin_user(make_user):
    return make_user(UserRole.ADMIN, name='Admin')


@pytest.fixture
def sport_ticket(sport_marshal):
    return TicketWorkflow.create_ticket(
        sport_marshal,
        TicketType.SPORT,
        {'description': 'Car 44 spun at turn 3', 'location': 'Turn 3'},
    )
