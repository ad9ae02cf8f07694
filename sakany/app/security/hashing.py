# sakany/app/security/hashing.py
"""
Password hashing with Argon2id (argon2-cffi).

Stored form is the standard PHC string, salt and parameters included:
"$argon2id$v=19$m=19456,t=2,p=1$<salt b64>$<hash b64>"

Both functions are CPU-bound. Request handlers call them through
run_in_threadpool so the event loop keeps serving other requests.
"""
import secrets

from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError

# - time_cost: number of iterations
# - memory_cost: memory usage in KiB
# - salt_len: fresh random salt per password
ARGON2_CONFIG = {
    "time_cost": 2,
    "memory_cost": 19456,   # 19 MiB
    "parallelism": 1,
    "hash_len": 32,
    "salt_len": 16,
    "type": Type.ID,
}

_hasher = PasswordHasher(**ARGON2_CONFIG)


def get_password_hash(password: str) -> str:
    """Hash a plaintext password with a fresh random salt."""
    return _hasher.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Check a plaintext password against a stored hash.

    argon2-cffi compares in constant time. A mismatch or any malformed
    stored value verifies as False.
    """
    if not plain_password or not hashed_password:
        return False

    try:
        return _hasher.verify(hashed_password, plain_password)
    except (VerificationError, InvalidHashError):
        return False


def needs_rehash(hashed_password: str) -> bool:
    """True when the stored hash was made with other parameters than ARGON2_CONFIG."""
    try:
        return _hasher.check_needs_rehash(hashed_password)
    except InvalidHashError:
        return True


# Verified against when the email is unknown, so a failed login costs
# the same whether or not the account exists.
DUMMY_HASH = get_password_hash(secrets.token_hex(16))
