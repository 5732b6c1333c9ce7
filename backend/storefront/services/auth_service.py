# Overview: Service-layer operations for staff accounts; encapsulates password hashing and database work.

"""
Staff Authentication Service

Uses bcrypt for password hashing and validates password strength.

- Passwords hashed with bcrypt (cost factor 12)
- Emails are normalized to lowercase on write and on lookup
- A wrong password (AuthError) is distinguishable from an unknown
  account (NotFoundError) and from a database failure (StoreError)
- Tokens are managed separately (see token_service.py)
"""

import re

import bcrypt
from sqlalchemy.exc import IntegrityError

from ..errors import AuthError, NotFoundError
from ..extensions import db
from ..models import User
from . import token_service
from .concurrency import run_bounded


class PasswordValidationError(ValueError):
    """Raised when password doesn't meet strength requirements."""
    pass


def normalize_email(email: str) -> str:
    return email.strip().lower()


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
    if len(password) < 8:
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
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise.
    A malformed stored hash raises ValueError from bcrypt.
    """
    return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))


def get_user(user_id: int) -> User:
    """Raises NotFoundError if no user has this id."""
    def _op(deadline):
        user = db.session.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    return run_bounded(_op)


def get_user_by_email(email: str) -> User:
    """Case-insensitive lookup. Raises NotFoundError if no user has this email."""
    email = normalize_email(email)

    def _op(deadline):
        user = db.session.query(User).filter_by(email=email).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    return run_bounded(_op)


def list_users() -> list[User]:
    def _op(deadline):
        return db.session.query(User).order_by(User.last_name, User.first_name).all()

    return run_bounded(_op)


def authenticate(email: str, password: str) -> User:
    """
    Authenticate a staff user by email and password.

    Raises:
        NotFoundError: no user with this email
        AuthError: password does not match
        StoreError: database failure
    """
    user = get_user_by_email(email)

    if not verify_password(password, user.password_hash):
        raise AuthError("Incorrect password")

    return user


def create_user(first_name: str, last_name: str, email: str, password: str) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        PasswordValidationError: password doesn't meet requirements
        ValueError: email already in use
    """
    password_hash = hash_password(password)
    email = normalize_email(email)

    def _op(deadline):
        user = User(
            first_name=first_name,
            last_name=last_name,
            email=email,
            password_hash=password_hash,
        )
        db.session.add(user)
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            raise ValueError("Email already in use")
        return user

    return run_bounded(_op, commit=True)


def _set_password(user_id: int, password_hash: str) -> None:
    db.session.query(User).filter_by(id=user_id).update(
        {"password_hash": password_hash}, synchronize_session=False
    )
    token_service.delete_tokens_for_user(user_id)


def update_user(user_id: int, first_name: str, last_name: str, email: str, password: str | None = None) -> User:
    """
    Update a user's profile; a non-empty password also replaces the hash.

    Changing the password revokes the user's tokens. Profile, password and
    token changes commit together.
    """
    password_hash = hash_password(password) if password else None
    email = normalize_email(email)

    def _op(deadline):
        user = db.session.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")

        user.first_name = first_name
        user.last_name = last_name
        user.email = email
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            raise ValueError("Email already in use")

        if password_hash:
            deadline.check()
            _set_password(user_id, password_hash)
        return user

    return run_bounded(_op, commit=True)


def update_password_for_user(user: User, password_hash: str) -> None:
    """Store an already-hashed password and revoke the user's tokens."""
    run_bounded(lambda deadline: _set_password(user.id, password_hash), commit=True)


def delete_user(user_id: int) -> None:
    """
    Delete a user and their tokens in one transaction.

    Deleting an unknown id is not an error.
    """
    def _op(deadline):
        token_service.delete_tokens_for_user(user_id)
        deadline.check()
        db.session.query(User).filter_by(id=user_id).delete(synchronize_session=False)

    run_bounded(_op, commit=True)
