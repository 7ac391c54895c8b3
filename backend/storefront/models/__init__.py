from .tenancy import Store, StoreMembership, OrderNumberSequence
from .auth import User, ApiToken, MobileVerification, VerificationAttempt
from .orders import Order, OrderCollectionAssociation, OrderEvent
from .transactions import Transaction, SystemRequested, UserVerified

__all__ = [
    'Store', 'StoreMembership', 'OrderNumberSequence',
    'User', 'ApiToken', 'MobileVerification', 'VerificationAttempt',
    'Order', 'OrderCollectionAssociation', 'OrderEvent',
    'Transaction', 'SystemRequested', 'UserVerified',
]
