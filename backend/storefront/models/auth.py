from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z


class User(db.Model):
    """
    Staff account for the admin back office.

    Emails are stored lowercase so lookups can compare them directly.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(128), nullable=False)
    last_name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "created_at": to_utc_z(self.created_at),
        }


class Token(db.Model):
    """
    Persisted authentication token.

    Only the SHA-256 digest of the token is stored; the plaintext is returned
    to the client once, at creation. A user holds at most one token: issuing
    a new one deletes the old.

    name and email are copied from the user at issue time.
    """
    __tablename__ = "tokens"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)

    token_hash = db.Column(db.LargeBinary(32), nullable=False, unique=True, index=True)
    scope = db.Column(db.String(32), nullable=False, default="authentication")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    expiry_date = db.Column(db.DateTime(timezone=True), nullable=False)

    user = db.relationship("User", backref=db.backref("tokens", lazy=True, passive_deletes=True))
