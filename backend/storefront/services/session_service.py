# Overview: Service-layer operations for API bearer tokens.

"""
API Token Management Service

WHY: The JSON API is called by store apps on behalf of a user. Each call
carries a bearer token that maps back to that user.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute timeout of API_TOKEN_TTL_HOURS
- Revocable; deactivating a user revokes their tokens on next use
"""

import hashlib
import secrets
from datetime import timedelta

from flask import current_app

from ..errors import UserNotFound
from ..extensions import db
from ..models import ApiToken, User
from ..time_utils import as_naive_utc, utcnow


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string. This is the plaintext token handed to
    the client; it is never stored.
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are already high-entropy, so a fast hash is sufficient.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_token(user_id: int) -> tuple[ApiToken, str]:
    """
    Create a token for a user.

    Returns (token_record, plaintext_token).
    """
    user = db.session.get(User, user_id)
    if not user:
        raise UserNotFound(f"User {user_id} not found")

    plaintext_token = generate_token()
    now = utcnow()

    token = ApiToken(
        user_id=user.id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + timedelta(hours=current_app.config["API_TOKEN_TTL_HOURS"]),
        is_revoked=False,
    )
    db.session.add(token)
    db.session.commit()

    return token, plaintext_token


def validate_token(token: str) -> User | None:
    """
    Return the user behind a token, or None if the token is unknown,
    expired, revoked, or belongs to a deactivated user.

    Updates last_used_at on success.
    """
    now = utcnow()
    record = db.session.query(ApiToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not record:
        return None

    if as_naive_utc(record.expires_at) < now:
        return None

    user = record.user
    if not user or not user.is_active:
        record.is_revoked = True
        record.revoked_at = now
        db.session.commit()
        return None

    record.last_used_at = now
    db.session.commit()
    return user


def revoke_token(token: str) -> bool:
    """Revoke a token. Returns True if it existed and was active."""
    record = db.session.query(ApiToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if not record:
        return False

    record.is_revoked = True
    record.revoked_at = utcnow()
    db.session.commit()
    return True


def revoke_all_user_tokens(user_id: int) -> int:
    """Revoke every active token of a user. Returns the number revoked."""
    count = db.session.query(ApiToken).filter_by(user_id=user_id, is_revoked=False).update(
        {"is_revoked": True, "revoked_at": utcnow()},
        synchronize_session=False,
    )
    db.session.commit()
    return count
