from __future__ import annotations

import logging
import random
import secrets
import string

_LOG = logging.getLogger("app.public_token")

TOKEN_ALPHABET = string.ascii_letters + string.digits
DEFAULT_TOKEN_LENGTH = 32
MAX_TOKEN_LENGTH = 64


def default_token_rng() -> random.Random:
    """Cryptographically strong source when the OS provides one."""
    rng = secrets.SystemRandom()
    try:
        rng.getrandbits(8)
    except NotImplementedError:
        _LOG.warning("OS entropy source unavailable; public tokens fall back to random.Random")
        return random.Random()
    return rng


def generate_public_token(length: int = DEFAULT_TOKEN_LENGTH, rng: random.Random | None = None) -> str:
    """Return a random alphanumeric token.

    Collisions are not checked against existing requests: with 62**32
    possible values the probability is negligible and accepted. The unique
    index on ``requests.public_token`` turns an actual collision into a
    failed write rather than two requests sharing one link.
    """
    size = int(length)
    if size < 1 or size > MAX_TOKEN_LENGTH:
        raise ValueError(f"token length must be between 1 and {MAX_TOKEN_LENGTH}")
    source = rng if rng is not None else default_token_rng()
    return "".join(source.choice(TOKEN_ALPHABET) for _ in range(size))


def is_well_formed_token(value: str | None) -> bool:
    token = str(value or "")
    if not token or len(token) > MAX_TOKEN_LENGTH:
        return False
    return all(ch in TOKEN_ALPHABET for ch in token)
