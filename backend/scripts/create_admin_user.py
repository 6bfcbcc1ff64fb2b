"""
Create the first admin account, or promote an existing user to admin.
Run this after migrations.
"""
import sys
from getpass import getpass
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tradejournal.api.auth import hash_password
from tradejournal.core.database import SessionLocal
from tradejournal.models.user import User
from tradejournal.models.user_settings import UserSettings


def create_admin_user(db, email: str, username: str, password: str, full_name: str = "Admin User"):
    """
    Returns (user, created). An existing account with this email keeps its
    password and is only promoted.
    """
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        existing.role = 'admin'
        existing.is_active = True
        db.commit()
        return existing, False

    if len(password) < 8:
        raise ValueError("Password must be at least 8 characters")

    admin = User(
        email=email,
        username=username,
        hashed_password=hash_password(password),
        full_name=full_name,
        role='admin',
        is_active=True,
    )
    db.add(admin)
    db.flush()
    db.add(UserSettings(user_id=admin.id))
    db.commit()
    db.refresh(admin)
    return admin, True


if __name__ == "__main__":
    import argparse
    parser = argparse.ArgumentParser(description='Create admin user')
    parser.add_argument('--email', required=True, help='Admin email')
    parser.add_argument('--username', default='admin', help='Admin username')
    parser.add_argument('--name', default='Admin User', help='Admin full name')
    parser.add_argument('--password', help='Admin password (prompted when omitted)')

    args = parser.parse_args()
    password = args.password or getpass("Password: ")

    db = SessionLocal()
    try:
        user, created = create_admin_user(db, args.email, args.username, password, args.name)
    except ValueError as e:
        db.rollback()
        print(f"Error creating admin user: {e}")
        sys.exit(1)
    finally:
        db.close()

    if created:
        print(f"Admin user created: {args.email}")
    else:
        print(f"Existing user {args.email} promoted to admin")
