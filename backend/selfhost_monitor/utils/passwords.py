"""Password hashing helpers.

Hashes are stored as "salt:key" in hex, derived with PBKDF2-SHA256.
"""
import hashlib
import hmac
import secrets

ITERATIONS = 120000
KEY_LENGTH = 64
SALT_BYTES = 16


def hash_password(password: str) -> str:
    salt = secrets.token_bytes(SALT_BYTES)
    key = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, ITERATIONS, dklen=KEY_LENGTH)
    return f"{salt.hex()}:{key.hex()}"


def verify_password(password: str, stored: str) -> bool:
    """Check a password against a stored salt:key hash."""
    try:
        salt_hex, key_hex = stored.split(":")
        salt = bytes.fromhex(salt_hex)
        expected = bytes.fromhex(key_hex)
    except (AttributeError, ValueError):
        return False
    key = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, ITERATIONS, dklen=len(expected))
    return hmac.compare_digest(key, expected)
