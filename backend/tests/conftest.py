"""
Pytest fixtures for ARB POS backend tests.

Provides the test app on in-memory SQLite, a per-test clean database, the
Flask test client and helpers for calling RPC actions.
"""

import pytest

from arbpos import create_app
from arbpos.extensions import db


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'BCRYPT_ROUNDS': 4,
    'LOCK_TIMEOUT_SECONDS': 2,
    'TOKEN_PREFIX': 'ARB',
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def call_rpc(client, action: str, /, **payload) -> dict:
    """POST one action and return the decoded envelope."""
    response = client.post('/api/rpc', json={'action': action, 'payload': payload})
    body = response.get_json()
    assert body is not None, f"{action} returned non-JSON ({response.status_code})"
    return body


def expect_success(body: dict):
    assert body['status'] == 'success', body
    return body['data']


def expect_error(body: dict, code: str) -> dict:
    assert body['status'] == 'error', body
    assert body['code'] == code, body
    assert body['message']
    return body


@pytest.fixture(scope='function')
def rpc(client, db_session):
    """rpc(action, **payload) -> envelope dict, against a clean database."""
    def _call(action, /, **payload):
        return call_rpc(client, action, **payload)
    return _call


@pytest.fixture(scope='function')
def admin_token(rpc):
    """Operator session token for the default credential."""
    data = expect_success(rpc('adminLogin', username='admin', password='admin123'))
    return data['token']


@pytest.fixture(scope='function')
def store_session(rpc, admin_token):
    """
    A minted token already bound to a device.

    Returns the payload fields every POS action needs.
    """
    minted = expect_success(rpc('adminGenerateToken', adminSessionToken=admin_token,
                                storeName='Toko Test', duration='1m'))
    creds = {'token': minted['token'], 'deviceId': 'device-test-1'}
    expect_success(rpc('login', **creds))
    return creds


@pytest.fixture(scope='function')
def pos(rpc, store_session):
    """pos(action, **payload): device-authenticated POS call."""
    def _call(action, /, **payload):
        return rpc(action, **store_session, **payload)
    return _call
