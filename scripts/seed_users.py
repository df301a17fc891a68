"""
Seed users for local development.

Creates (or fixes the role of):
- admin@lms.local      (ADMIN)
- instructor@lms.local (INSTRUCTOR)
- student@lms.local    (STUDENT)

The uids match the static verifier tokens in .env.example, so with
AUTH_VERIFIER=static the API accepts "Bearer dev-admin-token" etc.

Usage (project root, .env configured, migrations applied):
    python scripts/seed_users.py
"""

import os
import sys
from pathlib import Path

root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(root))
os.chdir(root)

from dotenv import load_dotenv

load_dotenv()

from lms_api.database.models.user import User  # noqa: E402
from lms_api.database.session import get_session  # noqa: E402
from lms_api.utils.enums import UserRole  # noqa: E402

SEED_USERS = [
    ("dev-admin", "admin@lms.local", "System Administrator", UserRole.ADMIN),
    ("dev-instructor", "instructor@lms.local", "John Instructor", UserRole.INSTRUCTOR),
    ("dev-student", "student@lms.local", "Jane Student", UserRole.STUDENT),
]


def main() -> None:
    with get_session() as session:
        for uid, email, name, role in SEED_USERS:
            user = session.query(User).filter(User.email == email).first()
            if user is None:
                user = User(
                    firebase_uid=uid,
                    email=email,
                    name=name,
                    role=role,
                    is_active=True,
                    email_verified=True,
                )
                session.add(user)
                session.flush()
                print(f"  Created {role}: {email} (id={user.id})")
            else:
                user.role = role
                user.is_active = True
                print(f"  {email} already exists (id={user.id}), role set to {role}")
    print("Seed complete.")


if __name__ == "__main__":
    main()
