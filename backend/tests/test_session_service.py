"""
API token, mobile verification, throttling, deactivation and code
generator tests.
"""

from datetime import datetime, timedelta

import pytest

from storefront.errors import UserNotFound
from storefront.models import ApiToken, User
from storefront.services import (
    account_service,
    mobile_verification_service,
    session_service,
    verification_throttle_service,
)
from storefront.services.asset_store import discard_assets
from storefront.services.code_generator import CodeGenerator


class TestTokens:

    def test_token_is_stored_hashed(self, db_session, staff):
        record, plaintext = session_service.create_token(staff.id)

        assert len(plaintext) == 64
        assert record.token_hash == session_service.hash_token(plaintext)
        assert record.token_hash != plaintext

    def test_validate_token(self, db_session, staff):
        _, plaintext = session_service.create_token(staff.id)
        assert session_service.validate_token(plaintext).id == staff.id
        assert session_service.validate_token("not-a-token") is None

    def test_expired_token(self, db_session, staff):
        record, plaintext = session_service.create_token(staff.id)
        record.expires_at = record.created_at - timedelta(seconds=1)
        db_session.commit()

        assert session_service.validate_token(plaintext) is None

    def test_deactivated_user_token_is_revoked(self, db_session, staff):
        record, plaintext = session_service.create_token(staff.id)
        staff.is_active = False
        db_session.commit()

        assert session_service.validate_token(plaintext) is None
        assert db_session.get(ApiToken, record.id).is_revoked is True

    def test_revoke_all(self, db_session, staff):
        session_service.create_token(staff.id)
        session_service.create_token(staff.id)
        assert session_service.revoke_all_user_tokens(staff.id) == 2

    def test_unknown_user(self, db_session):
        with pytest.raises(UserNotFound):
            session_service.create_token(9999)


class TestMobileVerification:

    def test_generate_replaces_previous_code(self, db_session, customer):
        first = mobile_verification_service.generate_code(customer.mobile_number)
        second = mobile_verification_service.generate_code(customer.mobile_number)

        assert mobile_verification_service.verify_code(customer.mobile_number, second) is True
        if first != second:
            assert mobile_verification_service.verify_code(customer.mobile_number, first) is False

    def test_codes_may_be_shared(self, db_session, customer, friend, monkeypatch):
        monkeypatch.setattr(CodeGenerator, "random_n_digit_code", lambda self, n, exclude=(): "424242")

        mobile_verification_service.generate_code(customer.mobile_number)
        mobile_verification_service.generate_code(friend.mobile_number)

        numbers = mobile_verification_service.find_mobile_numbers_for_code("424242")
        assert sorted(numbers) == sorted([customer.mobile_number, friend.mobile_number])


class TestVerificationThrottle:

    @pytest.fixture
    def clock(self, monkeypatch):
        class Clock:
            now = datetime(2026, 3, 14, 9, 30, 0)

        frozen = Clock()
        monkeypatch.setattr(verification_throttle_service, "utcnow", lambda: frozen.now)
        return frozen

    def _fail(self, mobile_number, times):
        for _ in range(times):
            verification_throttle_service.record_failed_attempt(mobile_number)

    def test_locks_after_max_failures(self, db_session, customer, clock):
        self._fail(customer.mobile_number, verification_throttle_service.MAX_FAILED_ATTEMPTS - 1)
        assert verification_throttle_service.is_locked(customer.mobile_number) == (False, None)

        self._fail(customer.mobile_number, 1)
        assert verification_throttle_service.is_locked(customer.mobile_number) == (True, 15 * 60)

    def test_lock_expires(self, db_session, customer, clock):
        self._fail(customer.mobile_number, verification_throttle_service.MAX_FAILED_ATTEMPTS)
        clock.now += verification_throttle_service.LOCKOUT_DURATION

        assert verification_throttle_service.is_locked(customer.mobile_number) == (False, None)

    def test_success_starts_the_count_again(self, db_session, customer, clock):
        self._fail(customer.mobile_number, verification_throttle_service.MAX_FAILED_ATTEMPTS - 1)
        clock.now += timedelta(seconds=1)
        verification_throttle_service.record_successful_attempt(customer.mobile_number)
        clock.now += timedelta(seconds=1)

        assert verification_throttle_service.record_failed_attempt(customer.mobile_number) == 1
        status = verification_throttle_service.get_lockout_status(customer.mobile_number)
        assert status["locked"] is False
        assert status["failed_attempts"] == 1


class TestDeactivation:

    def test_deactivate_revokes_tokens(self, db_session, staff):
        _, plaintext = session_service.create_token(staff.id)
        session_service.create_token(staff.id)

        assert account_service.deactivate_user(staff.id) == 2

        db_session.expire_all()
        assert db_session.get(User, staff.id).is_active is False
        assert session_service.validate_token(plaintext) is None
        assert db_session.query(ApiToken).filter_by(user_id=staff.id, is_revoked=False).count() == 0

    def test_deactivate_twice(self, db_session, staff):
        session_service.create_token(staff.id)
        account_service.deactivate_user(staff.id)
        assert account_service.deactivate_user(staff.id) == 0

    def test_unknown_user(self, db_session):
        with pytest.raises(UserNotFound):
            account_service.deactivate_user(9999)


class TestDiscardAssets:

    def test_unexpected_errors_are_logged_not_raised(self, app, caplog):
        class BrokenStore:
            def __init__(self):
                self.attempted = []

            def delete(self, url):
                self.attempted.append(url)
                raise RuntimeError("bucket unavailable")

        broken = BrokenStore()
        discard_assets(broken, ["https://assets.example.test/1.png", None, "https://assets.example.test/2.png"])

        assert broken.attempted == ["https://assets.example.test/1.png", "https://assets.example.test/2.png"]
        assert "Unexpected error deleting asset" in caplog.text

    def test_without_asset_store(self, app):
        discard_assets(None, ["https://assets.example.test/1.png"])


class TestCodeGenerator:

    def test_codes_are_zero_padded(self):
        code = CodeGenerator().random_n_digit_code(6)
        assert len(code) == 6
        assert code.isdigit()

    def test_excluded_codes_are_skipped(self):
        taken = {f"{n}" for n in range(10) if n != 3}
        assert CodeGenerator().random_n_digit_code(1, exclude=taken) == "3"

    def test_exhausted_space(self):
        with pytest.raises(ValueError):
            CodeGenerator().random_n_digit_code(1, exclude=[str(n) for n in range(10)])
