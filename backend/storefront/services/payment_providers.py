# Overview: Payment gateway contract and the generic HTTP gateway adapter.

"""
Payment Providers

WHY: Card and mobile-money payments are settled by an external gateway.
The settlement service only needs three things from it: a link the payer
can follow, a way to withdraw that link, and a verdict on whether a
callback really corresponds to a completed payment.

DESIGN:
- Providers are registered per payment method (e.g., CARD, MOBILE_MONEY).
  Methods without a provider (CASH, EFT, ...) never call out.
- Provider calls are blocking network I/O bounded by a timeout.
- Any transport, HTTP or payload failure surfaces as ProviderError; the
  ledger is never touched by the provider itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import httpx
from flask import current_app

from ..errors import ProviderError
from ..models import Transaction


@dataclass(frozen=True)
class PaymentVerification:
    verified: bool
    metadata: dict = field(default_factory=dict)
    reference: str | None = None


class PaymentProvider:
    """Contract every gateway adapter implements."""

    name = "provider"

    def create_payment_link(self, transaction: Transaction) -> str:
        raise NotImplementedError

    def cancel_payment_link(self, transaction: Transaction) -> None:
        raise NotImplementedError

    def verify_payment(self, transaction: Transaction, callback_payload: dict) -> PaymentVerification:
        raise NotImplementedError


def transaction_reference(transaction: Transaction) -> str:
    """Our reference for a transaction as sent to the gateway."""
    return f"TXN-{transaction.id:08d}"


class HttpPaymentProvider(PaymentProvider):
    """
    JSON-over-HTTP gateway adapter.

    ENDPOINTS (relative to base_url):
    - POST payment-links              -> {"url": ..., "reference": ...}
    - POST payment-links/<ref>/cancel -> any 2xx
    - POST payments/verify            -> {"status": "approved" | ..., "amount_cents": ..., ...}
    """

    name = "http"

    def __init__(self, base_url: str, api_key: str | None = None, timeout: float = 15.0,
                 client: httpx.Client | None = None):
        self.base_url = base_url.rstrip("/") + "/"
        self.api_key = api_key
        self.timeout = timeout
        self._client = client

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _post(self, path: str, payload: dict) -> dict:
        url = self.base_url + path
        try:
            if self._client is not None:
                response = self._client.post(url, json=payload, headers=self._headers(), timeout=self.timeout)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(url, json=payload, headers=self._headers())
            response.raise_for_status()
            if not response.content:
                return {}
            data = response.json()
        except httpx.HTTPStatusError as exc:
            current_app.logger.warning(
                "Payment provider returned %s for %s", exc.response.status_code, path
            )
            raise ProviderError(f"Payment provider rejected the request ({exc.response.status_code})") from exc
        except httpx.HTTPError as exc:
            current_app.logger.warning("Payment provider unreachable for %s: %s", path, exc)
            raise ProviderError("Payment provider is unreachable") from exc
        except ValueError as exc:
            current_app.logger.warning("Payment provider sent malformed JSON for %s", path)
            raise ProviderError("Payment provider sent an unreadable response") from exc

        if not isinstance(data, dict):
            raise ProviderError("Payment provider sent an unexpected response")
        return data

    def create_payment_link(self, transaction: Transaction) -> str:
        data = self._post("payment-links", {
            "reference": transaction_reference(transaction),
            "amount_cents": transaction.amount_cents,
            "currency": transaction.currency,
            "description": transaction.description,
            "payment_method": transaction.payment_method,
        })
        url = data.get("url")
        if not url:
            raise ProviderError("Payment provider did not return a payment link")
        return url

    def cancel_payment_link(self, transaction: Transaction) -> None:
        self._post(f"payment-links/{transaction_reference(transaction)}/cancel", {})

    def verify_payment(self, transaction: Transaction, callback_payload: dict) -> PaymentVerification:
        data = self._post("payments/verify", {
            "reference": transaction_reference(transaction),
            "token": (callback_payload or {}).get("token"),
        })

        approved = data.get("status") == "approved"
        amount_matches = data.get("amount_cents") in (None, transaction.amount_cents)
        currency_matches = data.get("currency") in (None, transaction.currency)

        if approved and not (amount_matches and currency_matches):
            current_app.logger.warning(
                "Payment provider approved %s with mismatched amount %s %s",
                transaction_reference(transaction), data.get("amount_cents"), data.get("currency"),
            )

        return PaymentVerification(
            verified=approved and amount_matches and currency_matches,
            metadata=data,
            reference=data.get("reference"),
        )
