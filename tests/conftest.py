import pytest
from fastapi.testclient import TestClient

from aithreya.core.config import Settings
from aithreya.core.database import init_db
from aithreya.main import create_app
from aithreya.models.orm import User
from aithreya.seed import seed_content

PASSWORD = "Secret123"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite:///{tmp_path / 'aithreya-test.db'}",
        ENVIRONMENT="testing",
        BCRYPT_ROUNDS=4,
        JWT_SECRET="test-access-secret",
        JWT_REFRESH_SECRET="test-refresh-secret",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db(app):
    """A session for unit tests that don't go through HTTP."""
    init_db(app.state.engine)
    session = app.state.session_factory()
    yield session
    session.close()


@pytest.fixture
def seeded(client, app):
    """Seed sample content; returns slug -> id."""
    with app.state.session_factory() as session:
        return {c.slug: c.id for c in seed_content(session)}


@pytest.fixture
def register(client):
    def _register(email="asha@example.com", name="Asha Rao", password=PASSWORD, **extra):
        r = client.post(
            "/api/v1/auth/register",
            json={"name": name, "email": email, "password": password, **extra},
        )
        assert r.status_code == 201, r.text
        data = r.json()["data"]
        data["headers"] = {"Authorization": f"Bearer {data['token']}"}
        return data
    return _register


@pytest.fixture
def set_role(app):
    def _set_role(user_id, role):
        with app.state.session_factory() as session:
            session.get(User, user_id).role = role
            session.commit()
    return _set_role


@pytest.fixture
def user(register):
    return register()


@pytest.fixture
def admin(register, set_role):
    data = register(email="admin@example.com", name="Admin User")
    set_role(data["user"]["id"], "admin")
    return data
