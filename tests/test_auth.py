import os
import subprocess
import sys
from datetime import timedelta

import pytest
from django.core.management import call_command
from django.utils import timezone

from authentication.models import User, UserRole as R, UserStatus

pytestmark = pytest.mark.django_db

AUTH_URL = '/api/v1/auth/'


def _login(api_client, **identifier):
    api_client.post(f"{AUTH_URL}otp/request/", identifier, format='json')
    return api_client.post(f"{AUTH_URL}otp/verify/", {**identifier, 'otp': '3333'}, format='json')


def test_otp_login_by_email(api_client, chief_of_control):
    response = api_client.post(f"{AUTH_URL}otp/request/", {'email': chief_of_control.email}, format='json')
    assert response.status_code == 200
    assert response.data['detail'] == 'OTP sent.'

    response = api_client.post(f"{AUTH_URL}otp/verify/", {
        'email': chief_of_control.email,
        'otp': '3333',
    }, format='json')
    assert response.status_code == 200
    assert response.data['user']['role'] == R.CHIEF_OF_CONTROL
    assert response.data['access']
    assert response.data['refresh']

    chief_of_control.refresh_from_db()
    assert chief_of_control.otp_code == ''


def test_otp_login_by_marshal_id(api_client, sport_marshal):
    response = _login(api_client, marshal_id='M-1042')
    assert response.status_code == 200
    assert response.data['user']['marshal_id'] == 'M-1042'


def test_code_is_single_use(api_client, sport_marshal):
    _login(api_client, marshal_id='M-1042')
    response = api_client.post(f"{AUTH_URL}otp/verify/", {'marshal_id': 'M-1042', 'otp': '3333'}, format='json')
    assert response.status_code == 400
    assert response.data['message'] == 'Invalid code'


def test_wrong_code(api_client, sport_marshal):
    api_client.post(f"{AUTH_URL}otp/request/", {'marshal_id': 'M-1042'}, format='json')
    response = api_client.post(f"{AUTH_URL}otp/verify/", {'marshal_id': 'M-1042', 'otp': '0000'}, format='json')
    assert response.status_code == 400


def test_expired_code(api_client, sport_marshal):
    api_client.post(f"{AUTH_URL}otp/request/", {'marshal_id': 'M-1042'}, format='json')
    sport_marshal.refresh_from_db()
    sport_marshal.otp_expires_at = timezone.now() - timedelta(minutes=1)
    sport_marshal.save()

    response = api_client.post(f"{AUTH_URL}otp/verify/", {'marshal_id': 'M-1042', 'otp': '3333'}, format='json')
    assert response.status_code == 400
    assert response.data['message'] == 'Code expired'


def test_random_code_when_no_fixed_code(settings, sport_marshal):
    settings.OTP_FIXED_CODE = ''
    code = sport_marshal.issue_otp()
    assert len(code) == 4 and code.isdigit()
    assert sport_marshal.otp_matches(code)


def test_unknown_user(api_client):
    response = api_client.post(f"{AUTH_URL}otp/request/", {'email': 'nobody@race.local'}, format='json')
    assert response.status_code == 404


def test_identifier_required(api_client):
    response = api_client.post(f"{AUTH_URL}otp/request/", {}, format='json')
    assert response.status_code == 400
    assert response.data['message'] == 'Email or Marshal ID is required.'


def test_suspended_user_cannot_log_in(api_client, make_user):
    user = make_user(R.CONTROL_OP_TEAM, status=UserStatus.SUSPENDED)
    response = api_client.post(f"{AUTH_URL}otp/request/", {'email': user.email}, format='json')
    assert response.status_code == 403
    assert response.data['message'] == 'Account suspended'


def test_bearer_token_grants_access_until_suspension(api_client, control_op):
    access = _login(api_client, email=control_op.email).data['access']
    api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")

    response = api_client.get(f"{AUTH_URL}me/")
    assert response.status_code == 200
    assert response.data['email'] == control_op.email

    control_op.status = UserStatus.SUSPENDED
    control_op.save()
    assert api_client.get(f"{AUTH_URL}me/").status_code == 401


def test_refresh_and_logout(api_client, control_op):
    tokens = _login(api_client, email=control_op.email).data

    response = api_client.post(f"{AUTH_URL}token/refresh/", {'refresh': tokens['refresh']}, format='json')
    assert response.status_code == 200
    assert response.data['access']
    refresh = response.data['refresh']

    api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")
    response = api_client.post(f"{AUTH_URL}logout/", {'refresh': refresh}, format='json')
    assert response.status_code == 200

    api_client.credentials()
    response = api_client.post(f"{AUTH_URL}token/refresh/", {'refresh': refresh}, format='json')
    assert response.status_code == 401


def test_seed_users_creates_one_user_per_role():
    call_command('seed_users')
    call_command('seed_users')

    assert set(User.objects.values_list('role', flat=True)) == set(R.ALL)
    assert User.objects.count() == len(R.ALL)


@pytest.mark.parametrize('module', ['rest_framework.views', 'authentication.backends', 'tickets.views'])
def test_api_modules_import_in_a_fresh_process(settings, module):
    env = {**os.environ, 'DJANGO_SETTINGS_MODULE': 'incident_backend.settings'}
    result = subprocess.run(
        [sys.executable, '-c', f"import django; django.setup(); import {module}"],
        cwd=settings.BASE_DIR, env=env, capture_output=True, text=True,
    )
    assert result.returncode == 0, result.stderr


def test_system_check_passes():
    call_command('check')
