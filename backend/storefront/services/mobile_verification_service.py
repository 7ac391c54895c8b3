# Overview: Generic 6-digit verification codes per mobile number.

"""
Mobile Verification Codes

One outstanding code per mobile number. Generating again replaces it;
revoking clears it so the same code cannot be used twice. These codes also
authorize order collection (see collection_service.redeem_collection_code).
"""

from __future__ import annotations

from ..extensions import db
from ..models import MobileVerification, User
from .collaborators import get_collaborators
from .repositories import MobileVerificationRepository

CODE_LENGTH = 6

verifications = MobileVerificationRepository()


def generate_code(mobile_number: str) -> str:
    """Create or replace the code for a mobile number and return it."""
    code = get_collaborators().code_generator.random_n_digit_code(CODE_LENGTH)

    verification = verifications.get(mobile_number)
    if verification is None:
        verifications.add(MobileVerification(mobile_number=mobile_number, code=code))
    else:
        verification.code = code
    db.session.commit()
    return code


def verify_code(mobile_number: str, code: str) -> bool:
    if not code:
        return False
    verification = verifications.get(mobile_number)
    return verification is not None and verification.code == code


def find_mobile_numbers_for_code(code: str) -> list[str]:
    """Mobile numbers currently holding this code (codes are not unique)."""
    if not code:
        return []
    return verifications.mobile_numbers_for_code(code)


def revoke_code_for_user(user: User) -> None:
    """
    Clear the user's code. Does not commit: callers revoke as part of the
    unit of work that consumed the code.
    """
    verifications.clear_code(user.mobile_number)
