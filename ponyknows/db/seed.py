"""Database seeding for the PonyKnows portal.

Creates the default roles and the initial super admin account. Run from the
project root:
  python -m ponyknows.db.seed admin@example.com your-secure-password
"""

import argparse
import sys
from typing import Optional

from sqlalchemy.orm import Session

from ponyknows.core.rbac.roles import DEFAULT_ROLES
from ponyknows.core.security import get_password_hash
from ponyknows.db.models import Role, User, UserRole, UserStatus


def seed_default_roles(db: Session) -> dict[str, Role]:
    """
    Create or update the default roles.

    Existing system roles have their description and permissions brought in
    line with the code definitions, so re-running is safe.

    Args:
        db: Database session

    Returns:
        Dict mapping role key to Role object
    """
    seeded = {}

    for role_key, role_config in DEFAULT_ROLES.items():
        existing = db.query(Role).filter(Role.name == role_config["name"]).first()

        if existing:
            existing.description = role_config["description"]
            existing.permissions = list(role_config["permissions"])
            existing.is_system = True
            seeded[role_key] = existing
            continue

        role = Role(
            name=role_config["name"],
            description=role_config["description"],
            permissions=list(role_config["permissions"]),
            is_system=True,
        )
        db.add(role)
        seeded[role_key] = role

    db.flush()
    return seeded


def seed_admin(
    db: Session,
    email: str,
    password: str,
    *,
    name: Optional[str] = "Super Admin",
) -> User:
    """
    Create the super admin account, or grant the role to an existing user.

    The account is active and approved.
    """
    roles = seed_default_roles(db)
    super_admin = roles["super_admin"]

    user = db.query(User).filter(User.email == email).first()
    if user is None:
        user = User(
            email=email,
            name=name,
            password_hash=get_password_hash(password),
        )
        db.add(user)
    user.is_active = True
    user.status = UserStatus.APPROVED.value
    db.flush()

    linked = db.query(UserRole).filter(
        UserRole.user_id == user.id,
        UserRole.role_id == super_admin.id,
    ).first()
    if linked is None:
        db.add(UserRole(user_id=user.id, role_id=super_admin.id))
        db.flush()

    return user


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed default roles and the super admin account.")
    parser.add_argument("email", help="Admin e-mail address")
    parser.add_argument("password", help="Admin password (8-128 chars)")
    parser.add_argument("--name", default="Super Admin", help="Display name")
    args = parser.parse_args()

    if len(args.password) < 8 or len(args.password) > 128:
        print("Password must be 8-128 characters.", file=sys.stderr)
        return 1

    from ponyknows.db.base import Base
    from ponyknows.db.session import SessionLocal, engine

    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        user = seed_admin(db, args.email, args.password, name=args.name)
        db.commit()
        print(f"Seeded {len(DEFAULT_ROLES)} default roles.")
        print(f"Super admin: {user.email} (ID: {user.id})")
        return 0
    except Exception as e:
        db.rollback()
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
