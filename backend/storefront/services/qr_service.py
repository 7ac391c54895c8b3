# Overview: QR code rendering for collection codes.

from __future__ import annotations

from io import BytesIO

import qrcode

from .asset_store import AssetStore


def collection_qr_payload(redemption_url: str, code: str) -> str:
    """Scanned payload: the redemption URL and the code, pipe separated."""
    return f"{redemption_url}|{code}"


def render_qr_png(payload: str) -> bytes:
    """
    Render payload as a PNG QR code.

    Error correction level M (15% recovery) keeps the image small while
    surviving a scratched phone screen.
    """
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=4,
    )
    qr.add_data(payload)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def store_qr_code(asset_store: AssetStore, payload: str) -> str:
    """Render payload and store the image; returns the image URL."""
    return asset_store.store(render_qr_png(payload), suffix=".png")
