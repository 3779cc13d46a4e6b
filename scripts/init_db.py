import os
import sys
from pathlib import Path

from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.kinygroup.audit import record_event  # noqa: E402
from app.kinygroup.constants import ROLE_ADMIN  # noqa: E402
from app.kinygroup.models import User  # noqa: E402
from scripts._db_utils import script_session  # noqa: E402


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed the admin account in an idempotent way.
    Does NOT overwrite an existing admin user's password.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@example.com").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"

    # Direct engine/session so release can seed without importing app.wsgi.
    with script_session(database_url) as s:
        user = s.query(User).filter(User.email == admin_email).one_or_none()
        if not user:
            user = User(
                name="Administrator",
                email=admin_email,
                password_hash=generate_password_hash(admin_password),
                role=ROLE_ADMIN,
                is_active=True,
            )
            s.add(user)
            s.flush()
            record_event(s, actor=None, action="user.seed_admin", entity_type="User", entity_id=user.id)
        elif user.role != ROLE_ADMIN:
            user.role = ROLE_ADMIN

    print("Initialized database (seed_only).")
    print(f"Admin email: {admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
