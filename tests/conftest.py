"""
Shared pytest fixtures for the productivity API tests.
"""

import pytest
import os
import sys

# Ensure the project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from config import Config  # noqa: E402

ALICE = {'name': 'Alice', 'email': 'alice@x.com', 'password': 'P@ssw0rd1'}
BOB = {'name': 'Bob', 'email': 'bob@x.com', 'password': 'S3cure!pass'}


class TestConfig(Config):
    """Test configuration backed by in-memory SQLite."""
    __test__ = False

    SECRET_KEY = 'test-secret-key-for-testing-only'
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    JWT_ACCESS_SECRET = 'test-access-secret'
    JWT_REFRESH_SECRET = 'test-refresh-secret'
    JWT_ACCESS_EXPIRES = '15m'
    JWT_REFRESH_EXPIRES = '7d'
    VAULT_ENCRYPTION_KEY = 'test-vault-encryption-key'
    # cheap hashing keeps the suite fast
    PASSWORD_HASH_METHOD = 'pbkdf2:sha256:1000'


@pytest.fixture
def app():
    """Create application for testing."""
    from app import create_app
    from models import db

    application = create_app(config_class=TestConfig)
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


def signup(client, user=ALICE):
    """Register a user and return the response payload's data."""
    response = client.post('/auth/signup', json=user)
    assert response.status_code == 201, response.get_json()
    return response.get_json()['data']


def login(client, email, password):
    return client.post('/auth/login', json={'email': email, 'password': password})


def bearer(token):
    return {'Authorization': f'Bearer {token}'}


def password_category_id(client, access_token, name='Social'):
    response = client.get('/categories/password', headers=bearer(access_token))
    for category in response.get_json()['data']:
        if category['name'] == name:
            return category['id']
    raise AssertionError(f"category {name} not found")


def create_entry(client, access_token, secret='Tr0ub4dor&3', website='example.com', username='alice'):
    response = client.post('/vault/', headers=bearer(access_token), json={
        'website': website,
        'username': username,
        'password': secret,
        'categoryId': password_category_id(client, access_token),
    })
    assert response.status_code == 201, response.get_json()
    return response.get_json()['data']


@pytest.fixture
def alice(client):
    """Signed-up user with tokens."""
    return signup(client, ALICE)


@pytest.fixture
def bob(client):
    return signup(client, BOB)
