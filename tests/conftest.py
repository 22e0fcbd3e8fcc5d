import pytest

from app import create_app
from models import db, User


@pytest.fixture
def app():
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'SECRET_KEY': 'test-secret',
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def make_user(ctx):
    def _make(email='ana@example.com', name='Ana'):
        user = User(name=name, email=email, password_hash='not-a-real-hash')
        db.session.add(user)
        db.session.commit()
        return user.id
    return _make


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login_client(app):
    def _login(email='user@example.com', name='User', password='secret1'):
        c = app.test_client()
        resp = c.post('/api/auth/register', json={'email': email, 'name': name, 'password': password})
        assert resp.status_code == 201
        return c
    return _login
