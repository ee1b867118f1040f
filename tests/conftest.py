import pytest

from app import create_app


@pytest.fixture
def app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'DATA_DIR': str(tmp_path / 'data'),
    })
    yield app
    with app.app_context():
        app.extensions['record_store'].shutdown()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    with app.app_context():
        yield app.extensions['record_store']


def register(client, name='Alice', email='alice@test.com', password='pw123456'):
    return client.post('/register', data={'name': name, 'email': email, 'password': password})


def login(client, email='alice@test.com', password='pw123456'):
    return client.post('/login', data={'email': email, 'password': password})


def login_admin(client):
    return login(client, 'admin@example.com', 'Admin@123')
