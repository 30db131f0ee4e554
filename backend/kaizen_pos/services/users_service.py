# Overview: Staff account creation and lookup.

"""
User Service

Users are the identities cashier references resolve to. Passwords are hashed
with bcrypt and must pass the strength rules below; authentication itself
(login, sessions, tokens) is handled outside this service.
"""

from __future__ import annotations

import re

import bcrypt

from ..extensions import db
from ..models import User
from ..models.auth import USER_ROLES
from ..validation import ConflictError, ValidationError


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>_\-]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str, *, rounds: int = 12) -> str:
    """Hash password using bcrypt after validating its strength."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Check a login attempt against a stored bcrypt hash (False on a malformed hash)."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    *,
    name: str,
    email: str,
    password: str,
    role: str = "cashier",
    company_name: str = "Unknown",
    rounds: int = 12,
) -> User:
    name = (name or "").strip()
    email = (email or "").strip().lower()
    if not name or not email:
        raise ValidationError("name and email are required")
    if role not in USER_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(USER_ROLES)}")

    if db.session.query(User.id).filter_by(email=email).first() is not None:
        raise ConflictError("User with this email already exists")

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password, rounds=rounds),
        role=role,
        company_name=company_name or "Unknown",
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def list_users(company_name: str | None = None) -> list[User]:
    q = db.session.query(User)
    if company_name:
        q = q.filter(User.company_name == company_name)
    return q.order_by(User.name.asc(), User.id.asc()).all()
