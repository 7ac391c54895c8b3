from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class User(db.Model):
    """
    Platform user: customer, friend tagged on an order, or store team member.

    The mobile number links a user to the generic mobile verification codes
    that can also authorize an order collection.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(64), nullable=False)
    last_name = db.Column(db.String(64), nullable=False)
    mobile_number = db.Column(db.String(20), nullable=False, unique=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<User id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "name": self.name,
            "mobile_number": self.mobile_number,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class ApiToken(db.Model):
    """
    Bearer token for the JSON API.

    Only the SHA-256 hash of the token is stored.
    """
    __tablename__ = "api_tokens"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)

    user = db.relationship("User", backref=db.backref("api_tokens", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
        }


class MobileVerification(db.Model):
    """
    Generic 6-digit verification code per mobile number.

    Codes are not unique: two mobile numbers may hold the same code at the
    same time. A null code means nothing is outstanding for that number.
    """
    __tablename__ = "mobile_verifications"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    mobile_number = db.Column(db.String(20), nullable=False, unique=True, index=True)
    code = db.Column(db.String(6), nullable=True, index=True)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )


class VerificationAttempt(db.Model):
    """
    One check of a mobile verification code.

    Failed attempts inside the lockout window throttle further checks for
    the same mobile number (see verification_throttle_service).
    """
    __tablename__ = "verification_attempts"
    __table_args__ = (
        db.Index("ix_verification_attempts_number_time", "mobile_number", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    mobile_number = db.Column(db.String(20), nullable=False)
    checked_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    succeeded = db.Column(db.Boolean, nullable=False)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False)
