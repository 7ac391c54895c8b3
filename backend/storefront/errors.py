# Overview: Exception taxonomy shared by the settlement, order and collection services.

"""
Storefront Errors

Every rejected operation raises a StorefrontError subclass. Nothing is left
half-written when one of these escapes a service call: the surrounding unit
of work is rolled back before the exception reaches the caller.

CATEGORIES:
- validation: caller input is invalid relative to the current order state
- conflict: a business rule blocks the operation; may succeed after the order changes
- access: permission or credential failure
- not_found: referenced order / transaction / user does not exist
- provider: the external payment gateway failed; ledger unchanged
"""

from __future__ import annotations


CATEGORY_VALIDATION = "validation"
CATEGORY_CONFLICT = "conflict"
CATEGORY_ACCESS = "access"
CATEGORY_NOT_FOUND = "not_found"
CATEGORY_PROVIDER = "provider"


class StorefrontError(Exception):
    """Base class for all rejected storefront operations."""

    code = "storefront_error"
    category = CATEGORY_CONFLICT
    http_status = 400
    default_message = "The operation could not be completed"

    def __init__(self, message: str | None = None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


# =============================================================================
# VALIDATION
# =============================================================================

class ValidationError(StorefrontError):
    category = CATEGORY_VALIDATION
    http_status = 422


class CurrencyMismatch(ValidationError):
    code = "currency_mismatch"
    default_message = "Amounts in different currencies cannot be combined"


class InvalidPaymentAmount(ValidationError):
    code = "invalid_payment_amount"
    default_message = "Provide a positive amount or a percentage between 1 and 100"


class AmountExceedsOutstanding(ValidationError):
    code = "amount_exceeds_outstanding"
    default_message = "The amount specified is more than the remaining payable amount for this order"


class PercentageExceedsOutstanding(ValidationError):
    code = "percentage_exceeds_outstanding"
    default_message = "The percentage specified is more than the remaining payable percentage for this order"


class InvalidStatus(ValidationError):
    code = "invalid_status"
    default_message = "Unknown status"


class InvalidProofOfPayment(ValidationError):
    code = "invalid_proof_of_payment"
    default_message = "Upload a non-empty image or PDF as the proof of payment"


# =============================================================================
# CONFLICT
# =============================================================================

class ConflictError(StorefrontError):
    category = CATEGORY_CONFLICT
    http_status = 409


class DuplicatePendingPayment(ConflictError):
    code = "duplicate_pending_payment"
    default_message = "This payer already has a payment pending on this order"


class OrderCancelled(ConflictError):
    code = "order_cancelled"
    default_message = "Transaction changes are restricted while the order is cancelled"


class OrderFullyPaid(ConflictError):
    code = "order_fully_paid"
    default_message = "This order has already been paid in full"


class NoAmountOutstanding(ConflictError):
    code = "no_amount_outstanding"
    default_message = "This order does not have an amount left to pay"


class AlreadyCollected(ConflictError):
    code = "already_collected"
    default_message = "This order has already been collected"


class CannotDeleteTransaction(ConflictError):
    code = "cannot_delete_transaction"
    default_message = "Only order transactions can be deleted"


class OrderHasTransactions(ConflictError):
    code = "order_has_transactions"
    default_message = "Orders with recorded payments cannot be deleted"


class TransactionNotPending(ConflictError):
    code = "transaction_not_pending"
    default_message = "This transaction is not pending payment"


class ProofOfPaymentNotAllowed(ConflictError):
    code = "proof_of_payment_not_allowed"
    default_message = "Only payments confirmed by a team member can carry a proof of payment"


# =============================================================================
# ACCESS
# =============================================================================

class AccessError(StorefrontError):
    category = CATEGORY_ACCESS
    http_status = 403


class AccessDenied(AccessError):
    code = "access_denied"
    default_message = "You do not have permission to collect this order"


class InvalidCode(AccessError):
    code = "invalid_code"
    default_message = "This collection code is invalid"


class CodeExpired(AccessError):
    code = "code_expired"
    default_message = "This collection code has expired"


# =============================================================================
# NOT FOUND
# =============================================================================

class NotFoundError(StorefrontError):
    category = CATEGORY_NOT_FOUND
    http_status = 404


class OrderNotFound(NotFoundError):
    code = "order_not_found"
    default_message = "Order not found"


class TransactionNotFound(NotFoundError):
    code = "transaction_not_found"
    default_message = "Transaction not found"


class UserNotFound(NotFoundError):
    code = "user_not_found"
    default_message = "User not found"


class StoreNotFound(NotFoundError):
    code = "store_not_found"
    default_message = "Store not found"


# =============================================================================
# PROVIDER
# =============================================================================

class ProviderError(StorefrontError):
    """
    Raised when the external payment gateway fails.

    transaction_id is set when the failure happened after a pending
    transaction was already recorded (it stays pending for a later retry).
    """
    code = "provider_error"
    category = CATEGORY_PROVIDER
    http_status = 502
    default_message = "The payment provider could not process the request"

    def __init__(self, message: str | None = None, *, transaction_id: int | None = None, **context):
        super().__init__(message, **context)
        self.transaction_id = transaction_id

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.transaction_id is not None:
            data["transaction_id"] = self.transaction_id
        return data
