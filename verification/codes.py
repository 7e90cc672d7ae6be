"""
verification/codes.py -- One-time code generation.

secrets.choice draws from the OS CSPRNG. With the default 6 characters over
62 symbols there are ~5.7e10 codes; combined with the per-IP rate limit on the
verify endpoints, guessing inside the expiry window is impractical.
"""

import secrets
import string

CODE_ALPHABET = string.ascii_letters + string.digits


def generate_code(length: int = 6) -> str:
    """Return a random alphanumeric code of exactly `length` characters."""
    if length <= 0:
        raise ValueError("Code length must be positive.")
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))
