import os

# must be set before placement_portal creates its engine
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import pytest  # noqa: E402
from sqlalchemy import text  # noqa: E402

from placement_portal.core.auth import create_access_token  # noqa: E402
from placement_portal.db.postgres import engine, get_db_session, init_db  # noqa: E402
from placement_portal.db.tables import metadata  # noqa: E402


@pytest.fixture
def db():
    """Fresh in-memory schema with the default settings row."""
    metadata.drop_all(engine)
    init_db()
    yield
    metadata.drop_all(engine)


def insert_user(username, role="student", email=None):
    with get_db_session() as session:
        return session.execute(
            text("""
                INSERT INTO users (username, email, password_hash, role)
                VALUES (:username, :email, 'not-a-hash', :role)
                RETURNING id
            """),
            {"username": username, "email": email or f"{username}@example.com", "role": role},
        ).scalar_one()


def auth_header(user_id, role):
    token = create_access_token({"sub": str(user_id), "role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def login(db):
    """login("210001") -> Authorization header for a fresh user with that role."""
    def _login(username, role="student"):
        return auth_header(insert_user(username, role), role)
    return _login
