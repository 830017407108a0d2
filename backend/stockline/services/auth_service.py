# Overview: Service-layer operations for user accounts; password hashing, registration and authentication.

"""
Authentication Service

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, with uppercase, lowercase, digit and special char
- Email is the login identifier, stored lower-cased (case-insensitive unique)
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User
from ..permissions import ROLES, ROLE_STAFF
from ..time_utils import utcnow
from ..validation import ValidationError, ConflictError, NotFoundError, parse_bool
from .concurrency import atomic

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

USER_MUTABLE_FIELDS = {"name", "email", "role", "avatar", "is_active"}


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
    """Hash password using bcrypt with cost factor 12, after the strength check."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt check. Malformed hashes never match."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def normalize_email(email) -> str:
    value = (email or "").strip().lower()
    if not EMAIL_RE.match(value):
        raise ValidationError("A valid email is required")
    return value


def normalize_role(role) -> str:
    value = (role or ROLE_STAFF).strip().lower()
    if value not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
    return value


def find_user_by_email(email: str) -> User | None:
    return db.session.query(User).filter(User.email == (email or "").strip().lower()).first()


def create_user(
    name: str,
    email: str,
    password: str,
    role: str = ROLE_STAFF,
    avatar: str | None = None,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValidationError / PasswordValidationError: bad input
        ConflictError: email already registered (case-insensitive)
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    email = normalize_email(email)
    role = normalize_role(role)

    if find_user_by_email(email):
        raise ConflictError("Email is already registered")

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=role,
        avatar=avatar,
        is_active=True,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Email is already registered")
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Return the active user for these credentials, or None.

    Updates last_login_at on success.
    """
    user = db.session.query(User).filter(
        User.email == (email or "").strip().lower(),
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
    if not user:
        raise NotFoundError("User not found")
    return user


def update_user(
    user: User,
    patch: dict,
    *,
    new_password: str | None = None,
    current_password: str | None = None,
    require_current: bool = True,
) -> User:
    """
    Apply an admin or profile edit, optionally with a new password.

    The password is checked before any field is touched, and the fields and
    the new hash are committed together; any failure leaves the user as it was.
    Admin resets pass require_current=False.
    """
    password_hash = None
    if new_password:
        if require_current and not verify_password(current_password or "", user.password_hash):
            raise ValidationError("Current password is incorrect")
        password_hash = hash_password(new_password)

    try:
        with atomic():
            for key, value in patch.items():
                if key not in USER_MUTABLE_FIELDS:
                    continue
                if key == "email":
                    value = normalize_email(value)
                    existing = find_user_by_email(value)
                    if existing and existing.id != user.id:
                        raise ConflictError("Email is already registered")
                elif key == "role":
                    value = normalize_role(value)
                elif key == "name":
                    value = (value or "").strip()
                    if not value:
                        raise ValidationError("name cannot be blank")
                elif key == "is_active":
                    value = parse_bool(value, "is_active")
                setattr(user, key, value)
            if password_hash:
                user.password_hash = password_hash
    except IntegrityError:
        raise ConflictError("Email is already registered")
    return user


def deactivate_user(user: User) -> User:
    from .session_service import revoke_all_user_sessions

    user.is_active = False
    db.session.commit()
    revoke_all_user_sessions(user.id, reason="User deactivated")
    return user


def list_users_query(*, role: str | None = None, include_inactive: bool = True, search: str | None = None):
    query = db.session.query(User)
    if role:
        query = query.filter(User.role == role.lower())
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    if search:
        like = f"%{search}%"
        query = query.filter(db.or_(User.name.ilike(like), User.email.ilike(like)))
    return query
