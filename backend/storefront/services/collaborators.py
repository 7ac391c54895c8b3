# Overview: Per-application wiring of the external collaborators used by the services.

from __future__ import annotations

from dataclasses import dataclass, field

from flask import Flask, current_app

from .asset_store import AssetStore, LocalAssetStore
from .code_generator import CodeGenerator
from .notification_service import LoggingNotifier, Notifier
from .payment_providers import HttpPaymentProvider, PaymentProvider

EXTENSION_KEY = "storefront"


@dataclass
class Collaborators:
    payment_providers: dict[str, PaymentProvider] = field(default_factory=dict)
    notifier: Notifier | None = None
    asset_store: AssetStore | None = None
    code_generator: CodeGenerator = field(default_factory=CodeGenerator)

    def provider_for(self, payment_method: str | None) -> PaymentProvider | None:
        if not payment_method:
            return None
        return self.payment_providers.get(payment_method.upper())


def init_app(app: Flask) -> Collaborators:
    """Build the default collaborators from app config."""
    providers: dict[str, PaymentProvider] = {}
    if app.config.get("PAYMENT_PROVIDER_URL"):
        gateway = HttpPaymentProvider(
            app.config["PAYMENT_PROVIDER_URL"],
            api_key=app.config.get("PAYMENT_PROVIDER_API_KEY"),
            timeout=app.config.get("PAYMENT_PROVIDER_TIMEOUT", 15.0),
        )
        for method in app.config.get("PAYMENT_PROVIDER_METHODS", ()):
            providers[method.upper()] = gateway

    collaborators = Collaborators(
        payment_providers=providers,
        notifier=LoggingNotifier(),
        asset_store=LocalAssetStore(app.config["ASSET_STORE_DIR"], app.config["ASSET_BASE_URL"]),
    )
    app.extensions[EXTENSION_KEY] = collaborators
    return collaborators


def get_collaborators() -> Collaborators:
    return current_app.extensions[EXTENSION_KEY]
