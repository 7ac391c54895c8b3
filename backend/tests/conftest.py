"""
Pytest fixtures for storefront backend tests.

Provides test database setup, fake external collaborators (payment gateway,
notifier, asset store), store / user / order fixtures and the test client.
"""

from dataclasses import dataclass, field

import pytest

from storefront import create_app
from storefront.errors import ProviderError
from storefront.extensions import db
from storefront.models import Store, StoreMembership, User
from storefront.services import order_service, session_service
from storefront.services.asset_store import AssetStore, AssetStoreError
from storefront.services.collaborators import EXTENSION_KEY, Collaborators
from storefront.services.notification_service import Notifier
from storefront.services.payment_providers import PaymentProvider, PaymentVerification


# =============================================================================
# FAKE COLLABORATORS
# =============================================================================

class FakePaymentProvider(PaymentProvider):
    """Gateway double: records calls, can be told to fail or to decline."""

    name = "fake"

    def __init__(self):
        self.created = []
        self.cancelled = []
        self.verified = []
        self.fail_with = None
        self.approve = True

    def create_payment_link(self, transaction):
        if self.fail_with:
            raise self.fail_with
        self.created.append(transaction.id)
        return f"https://pay.example.test/links/{transaction.id}/{len(self.created)}"

    def cancel_payment_link(self, transaction):
        if self.fail_with:
            raise self.fail_with
        self.cancelled.append(transaction.id)

    def verify_payment(self, transaction, callback_payload):
        if self.fail_with:
            raise self.fail_with
        self.verified.append((transaction.id, callback_payload))
        return PaymentVerification(
            verified=self.approve,
            metadata={"status": "approved" if self.approve else "declined"},
            reference=f"GW-{transaction.id}" if self.approve else None,
        )


class RecordingNotifier(Notifier):
    def __init__(self):
        self.sent = []

    def notify(self, user_ids, payload):
        self.sent.append((list(user_ids), payload))

    def events(self):
        return [payload["event"] for _, payload in self.sent]


class InMemoryAssetStore(AssetStore):
    def __init__(self):
        self.files = {}
        self.deleted = []

    def store(self, data, suffix=".png"):
        url = f"https://assets.example.test/{len(self.files) + len(self.deleted) + 1}{suffix}"
        self.files[url] = data
        return url

    def delete(self, url):
        if url not in self.files:
            raise AssetStoreError(f"Asset {url} does not exist")
        del self.files[url]
        self.deleted.append(url)


@dataclass
class Fakes:
    provider: FakePaymentProvider = field(default_factory=FakePaymentProvider)
    notifier: RecordingNotifier = field(default_factory=RecordingNotifier)
    assets: InMemoryAssetStore = field(default_factory=InMemoryAssetStore)


# =============================================================================
# APP & DATABASE
# =============================================================================

@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'ASSET_STORE_DIR': str(tmp_path_factory.mktemp("assets")),
        'PUBLIC_BASE_URL': 'https://shop.example.test',
        'PAYMENT_PROVIDER_URL': None,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    # Clear all data but keep schema
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    # Cleanup after test
    db.session.rollback()


@pytest.fixture(scope='function')
def fakes(app):
    """Swap the external collaborators for in-memory doubles."""
    original = app.extensions[EXTENSION_KEY]
    doubles = Fakes()
    app.extensions[EXTENSION_KEY] = Collaborators(
        payment_providers={"CARD": doubles.provider, "MOBILE_MONEY": doubles.provider},
        notifier=doubles.notifier,
        asset_store=doubles.assets,
        code_generator=original.code_generator,
    )
    yield doubles
    app.extensions[EXTENSION_KEY] = original


# =============================================================================
# STORES, USERS, ORDERS
# =============================================================================

@pytest.fixture(scope='function')
def make_user(db_session):
    counter = {"n": 0}

    def _make(first_name="Test", last_name="User", mobile_number=None):
        counter["n"] += 1
        user = User(
            first_name=first_name,
            last_name=last_name,
            mobile_number=mobile_number or f"+2677100{counter['n']:04d}",
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture(scope='function')
def store(db_session):
    store = Store(name="Main Street Bakery", currency="BWP")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def customer(make_user):
    return make_user("Kago", "Sebina", "+26772000001")


@pytest.fixture(scope='function')
def friend(make_user):
    return make_user("Lesedi", "Moyo", "+26772000002")


@pytest.fixture(scope='function')
def staff(db_session, make_user, store):
    """Joined team member of the store."""
    user = make_user("Tumi", "Dube", "+26772000003")
    db_session.add(StoreMembership(store_id=store.id, user_id=user.id, role="Admin", has_joined=True))
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def outsider(make_user):
    return make_user("Ora", "Pule", "+26772000009")


@pytest.fixture(scope='function')
def order(fakes, store, customer, friend):
    """BWP 100.00 order with the customer and one friend who may collect."""
    return order_service.create_order(
        store.id,
        customer.id,
        10000,
        friend_user_ids=[friend.id],
    )


@pytest.fixture(scope='function')
def failing_provider(fakes):
    fakes.provider.fail_with = ProviderError("Payment provider is unreachable")
    return fakes.provider


# =============================================================================
# AUTH HELPERS
# =============================================================================

def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def staff_headers(staff):
    _, token = session_service.create_token(staff.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def customer_headers(customer):
    _, token = session_service.create_token(customer.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def outsider_headers(outsider):
    _, token = session_service.create_token(outsider.id)
    return auth_headers(token)
