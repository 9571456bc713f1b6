import hashlib
import secrets

PBKDF2_ROUNDS = 100000


def _derive(password: str, salt: str) -> str:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), PBKDF2_ROUNDS).hex()


def hash_password(password: str) -> str:
    """Stored as "<salt>$<pbkdf2-sha256 hex>" with a per-user salt"""
    salt = secrets.token_hex(16)
    return f"{salt}${_derive(password, salt)}"


def verify_password(password: str, password_hash: str) -> bool:
    salt, sep, stored_hash = password_hash.partition("$")
    if not sep:
        return False
    return secrets.compare_digest(_derive(password, salt), stored_hash)


def generate_verification_code() -> str:
    """Six-digit code sent by email on registration"""
    return f"{secrets.randbelow(900000) + 100000}"
