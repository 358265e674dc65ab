"""Password hashing (Argon2id via argon2-cffi)."""

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

_password_hasher = PasswordHasher()

# Verified against when a login names an unknown account, so both paths cost
# one Argon2 verification.
DUMMY_PASSWORD_HASH = _password_hasher.hash("negocify-no-such-account")


def hash_password(password: str) -> str:
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return _password_hasher.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False
