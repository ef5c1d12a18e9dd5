"""
hubbub.engine.security — Tokens & Password Hashing
===================================================

Salts, auth tokens and API secrets are 20 bytes of OS randomness,
hex-encoded.  Passwords are stored as a hex PBKDF2-HMAC derived key; the
digest, iteration count and key length come from the options (SHA-1, 1000
iterations and 160 bits by default, for compatibility with existing
accounts).
"""

from __future__ import annotations

import hashlib
import hmac
import secrets

from hubbub.engine.options import Options

RANDOM_BYTES = 20

_DEFAULT_OPTIONS = Options()


def generate_random() -> str:
    """Return 20 random bytes as 40 hex characters."""
    return secrets.token_hex(RANDOM_BYTES)


def derive_key(password: str, salt: str, options: Options | None = None) -> str:
    """PBKDF2-HMAC of *password* with *salt*, hex-encoded."""
    opts = options or _DEFAULT_OPTIONS
    algorithm = opts.get_str("password_hash_algorithm", "sha1")
    iterations = max(opts.get_int("password_iterations", 1000), 1)
    key_length = max(opts.get_int("password_key_bits", 160) // 8, 1)

    derived = hashlib.pbkdf2_hmac(
        algorithm,
        password.encode("utf-8"),
        salt.encode("utf-8"),
        iterations,
        dklen=key_length,
    )
    return derived.hex()


def keys_match(expected: str, candidate: str) -> bool:
    """Constant-time string comparison."""
    return hmac.compare_digest(expected.encode("utf-8"), candidate.encode("utf-8"))
