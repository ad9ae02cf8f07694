# sakany/app/security/tokens.py
import secrets

# 256-bit tokens for sessions, challenges and password resets
DEFAULT_TOKEN_BYTES = 32

# 160-bit secrets, the RFC 4226 recommended HMAC-SHA1 key size
TWO_FACTOR_SECRET_BYTES = 20

MIN_TOKEN_BYTES = 16


def generate_token(nbytes: int = DEFAULT_TOKEN_BYTES) -> str:
    """
    Generate an opaque, cryptographically secure token.

    Returns:
        Hex string of ``2 * nbytes`` characters
    """
    if nbytes < MIN_TOKEN_BYTES:
        raise ValueError(f"tokens need at least {MIN_TOKEN_BYTES} bytes of entropy")
    return secrets.token_hex(nbytes)


def generate_two_factor_secret() -> str:
    return generate_token(TWO_FACTOR_SECRET_BYTES)
