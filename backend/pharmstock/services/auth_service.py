# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication and User Service

WHY: Every stock change and allocation must be attributable. Uses bcrypt for
secure password hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
- The serialized user never carries the password hash
"""

import re

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError
from ..extensions import db
from ..models import User
from ..permissions import DEFAULT_ROLE, is_valid_role
from ..validation import ValidationError
from .concurrency import commit_with_retry
from pharmstock.time_utils import utcnow


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def _validate_role(role: str) -> str:
    if not is_valid_role(role):
        raise ValidationError(f"Unknown role: {role}")
    return role


def _clean_department(department) -> str | None:
    if department is None:
        return None
    if not isinstance(department, str):
        raise ValidationError("department must be a string")
    return department.strip() or None


def create_user(
    *,
    username: str,
    password: str,
    full_name: str,
    role: str = DEFAULT_ROLE,
    department: str | None = None,
) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises:
        ValidationError: blank fields, unknown role, weak password
        ConflictError: username already taken
    """
    username = (username or "").strip()
    full_name = (full_name or "").strip()
    if not username:
        raise ValidationError("username is required")
    if not full_name:
        raise ValidationError("full_name is required")
    _validate_role(role)

    if db.session.query(User.id).filter_by(username=username).first() is not None:
        raise ConflictError("Username already exists")

    user = User(
        username=username,
        password_hash=hash_password(password),
        full_name=full_name,
        role=role,
        department=_clean_department(department),
    )

    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("Username already exists") from exc

    current_app.logger.info("User %s (%s) created with role %s", user.id, user.username, user.role)
    return user


def register_user(*, username: str, password: str, full_name: str, department: str | None = None) -> User:
    """Self-registration. Always creates the default (least privileged) role."""
    return create_user(
        username=username,
        password=password,
        full_name=full_name,
        role=DEFAULT_ROLE,
        department=department,
    )


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate user with username and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    user = db.session.query(User).filter(
        User.username == username,
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.username).all()


def list_users_by_role(role: str) -> list[User]:
    _validate_role(role)
    return db.session.query(User).filter_by(role=role).order_by(User.username).all()


def update_user(*, user_id: int, role: str | None = None, department: str | None = None,
                clear_department: bool = False) -> User:
    """Edit a user's role and/or department."""
    user = get_user(user_id)

    # Validate everything before touching the row
    if role is not None:
        _validate_role(role)
    if not clear_department and department is not None:
        department = _clean_department(department)
        clear_department = department is None

    if role is not None:
        user.role = role
    if clear_department:
        user.department = None
    elif department is not None:
        user.department = department

    commit_with_retry()
    return user
