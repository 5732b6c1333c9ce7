# Overview: Service-layer operations for authentication tokens; encapsulates hashing and database work.

"""
Authentication Token Service

Tokens are 16 bytes from the OS secure random source, base32 encoded
(no padding) for the client. Only a SHA-256 digest is persisted.

- One live token per user: persisting a new token deletes the old ones
  in the same transaction, so there is never a window with zero tokens.
- Validity is purely time-bounded (expiry_date > now). Tokens are not
  rotated on use.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from ..errors import NotFoundError, RandomSourceError
from ..extensions import db
from ..models import Token as TokenRecord, User
from .concurrency import run_bounded
from storefront.time_utils import utcnow, to_utc_z


SCOPE_AUTHENTICATION = "authentication"

TOKEN_ENTROPY_BYTES = 16


@dataclass
class Token:
    """Freshly generated token. plaintext is never persisted."""
    plaintext: str
    user_id: int
    hash: bytes = field(repr=False)
    expiry: datetime
    scope: str = SCOPE_AUTHENTICATION

    def to_dict(self) -> dict:
        return {"token": self.plaintext, "expiry": to_utc_z(self.expiry)}


def hash_token(plaintext: str) -> bytes:
    """Raw 32-byte SHA-256 digest of the plaintext token."""
    return hashlib.sha256(plaintext.encode("utf-8")).digest()


def generate_token(user_id: int, ttl: timedelta, scope: str = SCOPE_AUTHENTICATION) -> Token:
    """
    Generate a token for user_id that expires ttl from now.

    Raises RandomSourceError if the secure random source is unavailable.
    """
    try:
        random_bytes = secrets.token_bytes(TOKEN_ENTROPY_BYTES)
    except (OSError, NotImplementedError) as exc:
        raise RandomSourceError("Secure random source unavailable") from exc

    plaintext = base64.b32encode(random_bytes).decode("ascii").rstrip("=")

    return Token(
        plaintext=plaintext,
        user_id=user_id,
        hash=hash_token(plaintext),
        expiry=utcnow() + ttl,
        scope=scope,
    )


def persist_token(token: Token, user: User) -> TokenRecord:
    """
    Replace every token of user with token.

    The delete and the insert commit together. Raises StoreError on any
    database failure; nothing is changed in that case.
    """
    def _op(deadline):
        delete_tokens_for_user(user.id)
        deadline.check()

        now = utcnow()
        record = TokenRecord(
            user_id=user.id,
            name=user.full_name,
            email=user.email,
            token_hash=token.hash,
            scope=token.scope,
            created_at=now,
            updated_at=now,
            expiry_date=token.expiry,
        )
        db.session.add(record)
        db.session.flush()
        return record

    return run_bounded(_op, commit=True)


def resolve_user(plaintext: str) -> User:
    """
    Return the user owning an unexpired token with this plaintext.

    Raises NotFoundError if the token is unknown or expired.
    """
    token_hash = hash_token(plaintext)

    def _op(deadline):
        user = db.session.query(User).join(
            TokenRecord, TokenRecord.user_id == User.id
        ).filter(
            TokenRecord.token_hash == token_hash,
            TokenRecord.expiry_date > utcnow(),
        ).first()

        if not user:
            raise NotFoundError("No valid token found")
        return user

    return run_bounded(_op)


def delete_tokens_for_user(user_id: int) -> int:
    """
    Delete all tokens of a user inside the caller's unit of work.

    Does not commit; use from within run_bounded(..., commit=True).
    """
    return db.session.query(TokenRecord).filter_by(user_id=user_id).delete(synchronize_session=False)


def revoke_user_tokens(user_id: int) -> int:
    """Delete all tokens of a user. Returns count deleted."""
    return run_bounded(lambda deadline: delete_tokens_for_user(user_id), commit=True)


def cleanup_expired_tokens() -> int:
    """
    Delete tokens whose expiry has passed.

    Returns count of tokens deleted. Run periodically (flask tokens cleanup).
    """
    def _op(deadline):
        deleted = db.session.query(TokenRecord).filter(
            TokenRecord.expiry_date <= utcnow()
        ).delete(synchronize_session=False)
        return deleted

    return run_bounded(_op, commit=True)
