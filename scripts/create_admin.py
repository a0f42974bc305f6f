#!/usr/bin/env python3
"""
Admin Bootstrap Script

Checks the database connection, creates the tables and the first admin
account. Later coordinators/admins are promoted through
PUT /api/admin/users/{username}/role.

Usage: python scripts/create_admin.py <username> <email> <password>
"""
import sys
sys.path.insert(0, '.')

from sqlalchemy import text

from placement_portal.core.auth import hash_password
from placement_portal.core.config import get_settings
from placement_portal.db.postgres import check_database_connection, get_db_session, init_db


def main():
    if len(sys.argv) != 4:
        print(__doc__)
        sys.exit(1)
    username, email, password = sys.argv[1:]

    settings = get_settings()
    print("=" * 50)
    print("PLACEMENT PORTAL - ADMIN BOOTSTRAP")
    print("=" * 50)

    print("\n[1] Testing database...")
    print(f"    URL: {settings.sqlalchemy_url.split('@')[-1]}")
    if not check_database_connection():
        print("    ❌ Database: FAILED")
        sys.exit(1)
    print("    ✅ Database: CONNECTED")

    print("\n[2] Creating tables...")
    init_db()
    print("    ✅ Tables ready")

    print(f"\n[3] Creating admin '{username}'...")
    with get_db_session() as db:
        existing = db.execute(
            text("SELECT id FROM users WHERE username = :username"), {"username": username}
        ).fetchone()
        if existing:
            db.execute(text("UPDATE users SET role = 'admin' WHERE id = :id"), {"id": existing[0]})
            print("    ⚠️  User existed, promoted to admin")
        else:
            db.execute(
                text("""
                    INSERT INTO users (username, email, password_hash, role)
                    VALUES (:username, :email, :password_hash, 'admin')
                """),
                {"username": username, "email": email, "password_hash": hash_password(password)}
            )
            print("    ✅ Admin created")

    print("\n" + "=" * 50)
    print("Done!")
    print("=" * 50)


if __name__ == "__main__":
    main()
