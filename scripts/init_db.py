import os
import sys
from pathlib import Path

from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.quill.models import Permission, Role, User  # noqa: E402
from scripts._db_utils import resolve_database_url, script_session  # noqa: E402

PERMISSIONS = (
    ("posts.create", "Posts: create"),
    ("posts.edit", "Posts: edit"),
    ("posts.delete", "Posts: delete"),
    ("comments.create", "Comments: create"),
    ("comments.delete", "Comments: delete"),
)


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed permissions/roles/admin user in an idempotent way.
    Does NOT overwrite an existing admin user's password.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@quillboard.local").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"

    db_url = resolve_database_url(database_url)

    with script_session(db_url) as s:
        perms = []
        for key, name in PERMISSIONS:
            p = s.query(Permission).filter(Permission.key == key).one_or_none()
            if not p:
                p = Permission(key=key, name=name)
                s.add(p)
            perms.append(p)

        role_admin = s.query(Role).filter(Role.key == "admin").one_or_none()
        if not role_admin:
            role_admin = Role(key="admin", name="Administrator")
            s.add(role_admin)
        for p in perms:
            if p not in role_admin.permissions:
                role_admin.permissions.append(p)

        # Readers may comment but not moderate.
        role_reader = s.query(Role).filter(Role.key == "reader").one_or_none()
        if not role_reader:
            role_reader = Role(key="reader", name="Reader")
            s.add(role_reader)
        for p in perms:
            if p.key == "comments.create" and p not in role_reader.permissions:
                role_reader.permissions.append(p)

        user = s.query(User).filter(User.email == admin_email).one_or_none()
        if not user:
            user = User(email=admin_email, password_hash=generate_password_hash(admin_password), is_active=True)
            s.add(user)
        if role_admin not in user.roles:
            user.roles.append(role_admin)

    print("Initialized database (seed_only).")
    print(f"Admin email: {admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
