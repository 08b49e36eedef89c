from __future__ import annotations

import re
import secrets

_VOTE_TOKEN_RE = re.compile(r"^[0-9A-F]{32}$")


def generate_vote_token() -> str:
    """Return a fresh opaque vote token (128 random bits, uppercase hex)."""

    return secrets.token_hex(16).upper()


def is_well_formed_vote_token(token: str | None) -> bool:
    return bool(token) and bool(_VOTE_TOKEN_RE.fullmatch(str(token)))


def normalize_vote_token(token: str | None) -> str:
    # Tokens are bookkeeping only; anything we did not mint in the expected
    # shape is discarded rather than recorded.
    value = str(token or "").strip().upper()
    if is_well_formed_vote_token(value):
        return value
    return generate_vote_token()
