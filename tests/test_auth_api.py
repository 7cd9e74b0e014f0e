from unittest import mock

import pytest
from django.core import mail

from apps.core.auth_service import auth_service
from apps.core.exceptions import Conflict
from apps.core.models import User
from .conftest import PASSWORD

JSON = 'application/json'


def _signup(client, **overrides):
    body = {'username': 'ana', 'email': 'ana@example.com', 'password': 'senha-forte-1', 'name': 'Ana'}
    body.update(overrides)
    return client.post('/api/auth/signup/', body, content_type=JSON)


def test_signup_returns_user_and_tokens(api):
    mail.outbox.clear()
    response = _signup(api())

    assert response.status_code == 201
    payload = response.json()
    assert payload['user']['email'] == 'ana@example.com'
    assert payload['accessToken'] and payload['refreshToken']
    assert User.objects.get(username='ana').check_password('senha-forte-1')
    assert mail.outbox[0].to == ['ana@example.com']


def test_signup_duplicate(api):
    _signup(api())
    response = _signup(api(), username='outra')

    assert response.status_code == 409
    assert response.json()['error'] == 'USER_EXISTS'


def test_concurrent_signup_reports_conflict(api):
    _signup(api())

    # A outra requisição passou pela checagem antes deste cadastro gravar
    checagem = mock.Mock()
    checagem.exists.return_value = False
    with mock.patch.object(User.objects, 'filter', return_value=checagem):
        with pytest.raises(Conflict) as exc:
            auth_service.signup({'username': 'ana', 'email': 'ana@example.com', 'password': 'senha-forte-1'})

    assert exc.value.code == 'USER_EXISTS'
    assert User.objects.filter(username='ana').count() == 1


@pytest.mark.parametrize('field', ['username', 'email', 'password'])
def test_signup_missing_field(api, field):
    response = _signup(api(), **{field: ''})

    assert response.status_code == 400
    assert response.json()['error'] == 'VALIDATION_ERROR'


def test_signup_short_password(api):
    assert _signup(api(), password='curta').status_code == 400


def test_login(api, owner):
    response = api().post('/api/auth/login/', {'email': owner.email, 'password': PASSWORD}, content_type=JSON)

    assert response.status_code == 200
    owner.refresh_from_db()
    assert owner.refresh_token == response.json()['refreshToken']


def test_login_invalid_credentials(api, owner):
    response = api().post('/api/auth/login/', {'email': owner.email, 'password': 'errada'}, content_type=JSON)

    assert response.status_code == 401
    assert response.json()['error'] == 'INVALID_CREDENTIALS'


def test_login_lockout_after_repeated_failures(api, owner):
    client = api()
    for _ in range(5):
        client.post('/api/auth/login/', {'email': owner.email, 'password': 'errada'}, content_type=JSON)

    response = client.post('/api/auth/login/', {'email': owner.email, 'password': PASSWORD}, content_type=JSON)

    assert response.status_code == 403
    assert response.json()['error'] == 'ACCOUNT_LOCKED'


def test_refresh_rotates_tokens(api, owner):
    login = api().post('/api/auth/login/', {'email': owner.email, 'password': PASSWORD}, content_type=JSON).json()

    response = api().post('/api/auth/refresh-token/', {'refreshToken': login['refreshToken']}, content_type=JSON)
    assert response.status_code == 200
    rotated = response.json()['refreshToken']
    assert rotated != login['refreshToken']

    # O token antigo não vale mais
    again = api().post('/api/auth/refresh-token/', {'refreshToken': login['refreshToken']}, content_type=JSON)
    assert again.status_code == 401
    assert again.json()['error'] == 'INVALID_REFRESH_TOKEN'


def test_logout_clears_refresh_token(api, owner):
    login = api().post('/api/auth/login/', {'email': owner.email, 'password': PASSWORD}, content_type=JSON).json()

    response = api(owner).post('/api/auth/logout/', {'refreshToken': login['refreshToken']}, content_type=JSON)

    assert response.status_code == 200
    owner.refresh_from_db()
    assert owner.refresh_token is None


def test_forgot_and_reset_password(api, owner):
    mail.outbox.clear()
    response = api().post('/api/auth/forgot-password/', {'email': owner.email}, content_type=JSON)
    assert response.status_code == 200

    link = [line for line in mail.outbox[0].body.splitlines() if '/reset-password/' in line][0]
    token = link.rsplit('/', 1)[-1]

    response = api().post(f'/api/auth/reset-password/{token}/', {'password': 'nova-senha-123'}, content_type=JSON)
    assert response.status_code == 200
    owner.refresh_from_db()
    assert owner.check_password('nova-senha-123')

    # Token de uso único
    reused = api().post(f'/api/auth/reset-password/{token}/', {'password': 'outra-senha-123'}, content_type=JSON)
    assert reused.status_code == 400
    assert reused.json()['error'] == 'INVALID_RESET_TOKEN'


def test_forgot_password_unknown_email_sends_nothing(api, db):
    mail.outbox.clear()
    response = api().post('/api/auth/forgot-password/', {'email': 'ninguem@example.com'}, content_type=JSON)

    assert response.status_code == 200
    assert mail.outbox == []


def test_me_requires_token(api, owner):
    assert api().get('/api/auth/me/').status_code == 401

    response = api(owner).get('/api/auth/me/')
    assert response.status_code == 200
    assert response.json()['data']['id'] == owner.pk


def test_malformed_authorization_header(api, db):
    from django.test import Client

    response = Client(HTTP_AUTHORIZATION='Token abc').get('/api/auth/me/')
    assert response.status_code == 401
    assert response.json()['error'] == 'UNAUTHENTICATED'


def test_update_profile(api, owner):
    response = api(owner).put('/api/users/profile/', {'name': 'Dona'}, content_type=JSON)

    assert response.status_code == 200
    assert response.json()['data']['name'] == 'Dona'


def test_health(api, db):
    response = api().get('/api/health/')

    assert response.status_code == 200
    assert response.json()['database'] == 'ok'
