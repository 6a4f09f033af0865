"""Human-readable booking codes."""
from __future__ import annotations

import secrets
import string

CODE_PREFIX = "BK-"
CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 6


def generate_booking_code() -> str:
    """Return ``BK-`` plus six characters drawn uniformly from ``[A-Z0-9]``.

    Codes are not unique on their own; the booking service claims each one in the
    store before using it.
    """
    return CODE_PREFIX + "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))

