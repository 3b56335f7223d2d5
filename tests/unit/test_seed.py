"""Tests for default role and admin seeding."""

from ponyknows.core.rbac.resolver import load_effective_permissions
from ponyknows.core.rbac.roles import DEFAULT_ROLES, SUPER_ADMIN_PERMISSIONS
from ponyknows.core.security import verify_password
from ponyknows.db.models import Role, User, UserStatus
from ponyknows.db.seed import seed_admin, seed_default_roles

from tests.factories import create_user


def test_seed_default_roles(db_session):
    roles = seed_default_roles(db_session)

    assert set(roles) == set(DEFAULT_ROLES)
    assert db_session.query(Role).count() == len(DEFAULT_ROLES)
    assert all(role.is_system for role in roles.values())


def test_seed_default_roles_is_idempotent(db_session):
    seed_default_roles(db_session)
    member = db_session.query(Role).filter(Role.name == "Member").one()
    member.permissions = ["view_forum"]
    db_session.flush()

    seed_default_roles(db_session)

    assert db_session.query(Role).count() == len(DEFAULT_ROLES)
    assert set(member.permissions) == set(DEFAULT_ROLES["member"]["permissions"])


def test_seed_admin_creates_approved_super_admin(db_session):
    user = seed_admin(db_session, "admin@example.com", "supersecret")
    db_session.commit()

    assert user.is_active
    assert user.status == UserStatus.APPROVED.value
    assert verify_password("supersecret", user.password_hash)
    assert load_effective_permissions(db_session, user.id) == set(SUPER_ADMIN_PERMISSIONS)


def test_seed_admin_promotes_existing_user(db_session):
    existing = create_user(db_session, email="someone@example.com", status=UserStatus.PENDING)

    user = seed_admin(db_session, "someone@example.com", "ignored-password")
    db_session.commit()

    assert user.id == existing.id
    assert user.status == UserStatus.APPROVED.value
    assert db_session.query(User).count() == 1

    # Running again does not duplicate the role link
    seed_admin(db_session, "someone@example.com", "ignored-password")
    db_session.commit()
    assert len(db_session.get(User, user.id).user_roles) == 1
