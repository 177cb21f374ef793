"""
Shared fixtures: an app against a throwaway sqlite file, seeded with an admin
(all permissions) and a reader (may only comment).
"""
import pytest
from werkzeug.security import generate_password_hash

from app.quill import create_app
from app.quill.auth import _login_attempts
from app.quill.db import session_scope
from app.quill.models import Base, Permission, Role, User
from app.quill.modules.posts.models import Post

CSRF = "test-csrf-token"

_ENV_KEYS = (
    "SECRET_KEY",
    "ENV",
    "DATABASE_URL",
    "DB_CONNECTION",
    "DB_HOST",
    "DB_PORT",
    "DB_DATABASE",
    "DB_USERNAME",
    "DB_PASSWORD",
    "POSTS_PER_PAGE",
    "LOG_LEVEL",
)

ALL_PERMS = [
    ("posts.create", "Posts: create"),
    ("posts.edit", "Posts: edit"),
    ("posts.delete", "Posts: delete"),
    ("comments.create", "Comments: create"),
    ("comments.delete", "Comments: delete"),
]


def _seed_users(s):
    perms = {key: Permission(key=key, name=name) for key, name in ALL_PERMS}
    s.add_all(perms.values())

    admin_role = Role(key="admin", name="Administrator")
    admin_role.permissions.extend(perms.values())
    reader_role = Role(key="reader", name="Reader")
    reader_role.permissions.append(perms["comments.create"])

    admin = User(email="admin@example.com", password_hash=generate_password_hash("pw"), is_active=True)
    admin.roles.append(admin_role)
    reader = User(email="reader@example.com", password_hash=generate_password_hash("pw"), is_active=True)
    reader.roles.append(reader_role)
    s.add_all([admin_role, reader_role, admin, reader])


@pytest.fixture()
def make_app(tmp_path, monkeypatch):
    def _make(**env):
        for k in _ENV_KEYS:
            monkeypatch.delenv(k, raising=False)
        settings = {
            "SECRET_KEY": "test-secret",
            "DATABASE_URL": f"sqlite:///{tmp_path / 'test.db'}",
            "ENV": "test",
        }
        settings.update(env)
        for k, v in settings.items():
            monkeypatch.setenv(k, v)
        _login_attempts.clear()

        app = create_app()
        engine = app.extensions["sqlalchemy_engine"]
        Base.metadata.create_all(bind=engine)
        with session_scope(app) as s:
            _seed_users(s)
        return app

    return _make


@pytest.fixture()
def app(make_app):
    return make_app()


@pytest.fixture()
def client(app):
    return app.test_client()


def _login(client, email: str):
    r = client.post("/auth/login", data={"email": email, "password": "pw"})
    assert r.status_code == 302
    with client.session_transaction() as sess:
        sess["csrf_token"] = CSRF
    return client


@pytest.fixture()
def admin_client(app):
    return _login(app.test_client(), "admin@example.com")


@pytest.fixture()
def reader_client(app):
    return _login(app.test_client(), "reader@example.com")


@pytest.fixture()
def make_post(app):
    def _make(title="Hello world", body="First post body."):
        with session_scope(app) as s:
            p = Post(title=title, body=body)
            s.add(p)
            s.flush()
            return p.id

    return _make
