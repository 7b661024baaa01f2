"""
Shared pytest fixtures for ledger service tests.
"""
import os
import sys

import pytest

# Add project root and tests directory to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
tests_dir = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, project_root)
sys.path.insert(0, tests_dir)

# Select the testing config before the app module is imported
os.environ.setdefault('TESTING', '1')

# ============================================================================
# Configuration
# ============================================================================

# Password that passes the format rules
TEST_PASSWORD = 'TestPass123'

TEST_USERS = {
    'alice': 'alice@example.com',
    'bob': 'bob@example.com',
    'charlie': 'charlie@example.com',
}


# ============================================================================
# Flask App Fixtures
# ============================================================================

@pytest.fixture(scope='session')
def app():
    """Create Flask app for testing."""
    from app import create_app
    return create_app('testing')


@pytest.fixture
def db(app):
    """Fresh database and freshly wired services for each test.

    Keeps an app context pushed for the duration of the test.
    """
    from app import build_services
    from extensions import db as _db

    with app.app_context():
        _db.drop_all()
        _db.create_all()
        app.extensions['ledger'] = build_services(app)
        yield _db
        _db.session.remove()


@pytest.fixture
def services(app, db):
    """Services and repositories wired for the test app."""
    return app.extensions['ledger']


@pytest.fixture
def client(app, db):
    """Test client for API tests."""
    return app.test_client()


# ============================================================================
# Helpers
# ============================================================================

@pytest.fixture
def signup(services):
    """Register a user through the auth service and return the session."""
    def _signup(name):
        return services.auth_service.signup(TEST_USERS[name], TEST_PASSWORD)
    return _signup


@pytest.fixture
def make_friends(services):
    """Make two users friends through the friends service."""
    def _make_friends(first, second):
        services.friends_service.send_request(first, second)
        services.friends_service.accept_request(first, second)
    return _make_friends


@pytest.fixture
def api_signup(client):
    """Register a user through the API and return (user id, auth headers)."""
    def _signup(name):
        response = client.put('/api/v1/auth/signup', json={
            'email': TEST_USERS[name],
            'password': TEST_PASSWORD,
        })
        assert response.status_code == 200, response.get_json()
        session = response.get_json()['value']
        return session['id'], {'Authorization': f"Bearer {session['accessToken']}"}
    return _signup
