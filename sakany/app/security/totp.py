# sakany/app/security/totp.py
"""
TOTP (Time-based One-Time Password) helpers
RFC 6238 compliant - Compatible with Google Authenticator, Authy, Aegis

Key points:
- 6-digit codes
- 30-second time step
- HMAC-SHA1 (standard)

Secrets are stored as hex (see security.tokens); authenticator apps
expect Base32, so every helper converts through totp_key().
"""
import base64
import binascii
import io
from datetime import datetime, timezone
from typing import Optional

import pyotp
import qrcode
from pyotp.utils import strings_equal

# Accepted clock drift, in 30-second steps either side of now
VALID_WINDOW = 1


def totp_key(secret_hex: str) -> str:
    """
    Convert a stored hex secret into the Base32 key used by authenticators.

    20 random bytes become exactly 32 Base32 characters, no padding.
    """
    raw = bytes.fromhex(secret_hex)
    return base64.b32encode(raw).decode("ascii").rstrip("=")


def get_totp_uri(secret_hex: str, account: str, issuer: str = "Sakany") -> str:
    """
    Generate the otpauth:// URI for QR code encoding.

    Format: otpauth://totp/{issuer}:{account}?secret={secret}&issuer={issuer}
    """
    totp = pyotp.TOTP(totp_key(secret_hex))
    return totp.provisioning_uri(name=account, issuer_name=issuer)


def generate_qr_code_base64(secret_hex: str, account: str, issuer: str = "Sakany") -> str:
    """
    Generate a QR code image as Base64-encoded PNG.

    Frontend can display this directly using: <img src="data:image/png;base64,{result}">
    """
    uri = get_totp_uri(secret_hex, account, issuer)

    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=10,
        border=4,
    )
    qr.add_data(uri)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer)
    buffer.seek(0)

    return base64.b64encode(buffer.read()).decode("utf-8")


def match_totp_counter(
    secret_hex: str,
    code: str,
    after: Optional[int] = None,
    for_time: Optional[datetime] = None,
) -> Optional[int]:
    """
    Return the time-step counter a 6-digit code belongs to, or None.

    Counters within VALID_WINDOW steps of ``for_time`` (default: now) are
    tried. Counters at or below ``after`` are skipped, so a code that was
    already accepted once cannot be accepted again.
    """
    if not secret_hex or not code:
        return None

    code = code.strip().replace(" ", "")
    if len(code) != 6 or not code.isdigit():
        return None

    try:
        otp = pyotp.TOTP(totp_key(secret_hex))
    except (ValueError, binascii.Error):
        return None

    current = otp.timecode(for_time or datetime.now(timezone.utc))
    for counter in range(current - VALID_WINDOW, current + VALID_WINDOW + 1):
        if after is not None and counter <= after:
            continue
        if strings_equal(code, otp.generate_otp(counter)):
            return counter
    return None


def verify_totp(secret_hex: str, code: str) -> bool:
    """
    Verify a 6-digit TOTP code, allowing one step of clock drift.
    Returns True if valid, False otherwise.
    """
    return match_totp_counter(secret_hex, code) is not None


def get_current_totp(secret_hex: str) -> str:
    """Current code for a stored secret. Only tests call this."""
    return pyotp.TOTP(totp_key(secret_hex)).now()
