# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Staff accounts.

Every sale points at its seller. Accounts are never hard-deleted;
delete_user deactivates.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 6 characters required
"""

import bcrypt
from flask import current_app, has_app_context

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import User
from ..models.auth import ROLES, ROLE_SELLER
from ..time_utils import utcnow

MIN_PASSWORD_LENGTH = 6


class AuthenticationError(Exception):
    """Raised when credentials are wrong or the account is inactive."""
    pass


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt (cost factor 12 unless BCRYPT_ROUNDS says otherwise).

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12) if has_app_context() else 12
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def _validate_role(role: str) -> str:
    if not isinstance(role, str) or role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(sorted(ROLES))}")
    return role


def _required_text(value, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    return value.strip()


def _ensure_username_free(username: str, user_id: int | None = None) -> None:
    query = db.session.query(User).filter(User.username == username)
    if user_id is not None:
        query = query.filter(User.id != user_id)
    if query.first():
        raise ConflictError(f"Username {username!r} already exists")


def create_user(username: str, password: str, name: str, role: str = ROLE_SELLER) -> User:
    username = _required_text(username, "username")
    name = _required_text(name, "name")
    _validate_role(role)
    _ensure_username_free(username)

    user = User(
        username=username,
        name=name,
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(username: str, password: str) -> User:
    """
    Check credentials and stamp last_login_at.

    The same error is raised for unknown users and wrong passwords.
    """
    user = db.session.query(User).filter_by(username=username).first()
    if not user or not user.is_active or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid username or password")

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.id.asc()).all()


def update_user(user_id: int, *, username: str | None = None, name: str | None = None,
                role: str | None = None, password: str | None = None) -> User:
    user = get_user(user_id)

    # Validate every field before touching the row
    if username is not None:
        username = _required_text(username, "username")
        _ensure_username_free(username, user_id)
    if name is not None:
        name = _required_text(name, "name")
    if role is not None:
        _validate_role(role)
    password_hash = hash_password(password) if password is not None else None

    if username is not None:
        user.username = username
    if name is not None:
        user.name = name
    if role is not None:
        user.role = role
    if password_hash is not None:
        user.password_hash = password_hash

    db.session.commit()
    return user


def delete_user(user_id: int) -> User:
    """Deactivate the account and revoke its sessions."""
    from .session_service import revoke_all_user_sessions

    user = get_user(user_id)
    user.is_active = False
    db.session.commit()
    revoke_all_user_sessions(user_id, reason="User deactivated")
    return user
