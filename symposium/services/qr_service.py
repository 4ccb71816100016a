"""
Payment QR service.

Renders the UPI payment QR shown on the pay-online page. The roll number
goes into the transaction note so admins can match a proof screenshot to
its registration. Uses `segno`, a pure-Python QR encoder.
"""
from __future__ import annotations

import io
from typing import Optional
from urllib.parse import urlencode, quote

import segno

from symposium.config import settings


def upi_payment_uri(
    roll_number: str,
    amount: Optional[int] = None,
    payee_vpa: Optional[str] = None,
    payee_name: Optional[str] = None,
) -> str:
    """Build a ``upi://pay`` deep link for the registration fee."""
    params = {
        "pa": payee_vpa or settings.UPI_PAYEE_VPA,
        "pn": payee_name or settings.UPI_PAYEE_NAME,
        "am": f"{(settings.REGISTRATION_FEE if amount is None else amount):.2f}",
        "cu": "INR",
        "tn": f"Registration {roll_number}",
    }
    return "upi://pay?" + urlencode(params, quote_via=quote)


def generate_qr_png(payload: str, scale: int = 10, border: int = 2) -> bytes:
    """
    Render a QR code for the given payload as a PNG image.

    Parameters
    ----------
    payload : text to encode (a UPI deep link here)
    scale   : pixels per module
    border  : quiet-zone width in modules
    """
    qr  = segno.make_qr(payload, error="M")
    buf = io.BytesIO()
    qr.save(buf, kind="png", scale=scale, border=border)
    return buf.getvalue()
