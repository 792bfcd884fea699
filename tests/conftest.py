import os
import sys
import pytest

# Ensure project root is on sys.path for conftest imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app import create_app
from models import db as _db, User

ADMIN_EMAIL = 'admin@example.com'
USER_EMAIL = 'user@example.com'
PASSWORD = 'password123'


# Provide a Flask `app` fixture configured for testing with an in-memory SQLite DB.
# Storage credentials are blanked so uploads always land in a temp folder.
@pytest.fixture
def app(tmp_path):
    test_config = {
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SECRET_KEY': 'test-secret-key',
        'WTF_CSRF_ENABLED': False,  # Disable CSRF in tests
        'RATELIMIT_ENABLED': False,
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
        'AWS_ACCESS_KEY_ID': None,
        'AWS_SECRET_ACCESS_KEY': None,
        'AWS_BUCKET_NAME': None,
        'SUPABASE_URL': None,
        'SUPABASE_SERVICE_ROLE_KEY': None,
        'GOOGLE_CLIENT_ID': 'google-id',
        'GOOGLE_CLIENT_SECRET': 'google-secret',
        'NAVER_CLIENT_ID': None,
        'NAVER_CLIENT_SECRET': None,
        'KAKAO_CLIENT_ID': 'kakao-id',
        'KAKAO_CLIENT_SECRET': None,
        'OAUTH_REDIRECT_BASE': 'http://localhost:5000',
    }
    app, _ = create_app(test_config)

    with app.app_context():
        _db.create_all()
    yield app

    with app.app_context():
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def create_user(app, email=USER_EMAIL, password=PASSWORD, role='user', **fields):
    """Insert a user and return its id."""
    with app.app_context():
        u = User(email=email, role=role, **fields)
        u.set_password(password)
        _db.session.add(u)
        _db.session.commit()
        return u.id


def login(client, email, password=PASSWORD):
    rv = client.post('/api/login', json={'email': email, 'password': password})
    assert rv.status_code == 200, rv.get_json()
    return rv


@pytest.fixture
def admin_id(app):
    return create_user(app, email=ADMIN_EMAIL, role='admin', first_name='관리자')


@pytest.fixture
def user_id(app):
    return create_user(app, email=USER_EMAIL, role='user', first_name='길동', last_name='홍')


@pytest.fixture
def admin_client(app, admin_id):
    c = app.test_client()
    login(c, ADMIN_EMAIL)
    return c


@pytest.fixture
def user_client(app, user_id):
    c = app.test_client()
    login(c, USER_EMAIL)
    return c
