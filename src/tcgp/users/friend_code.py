"""Friend code helpers.

Codes are stored as bare digits and displayed in groups of four
(``1234-5678-9012-3456``).
"""

from __future__ import annotations

import re

from tcgp.db.models import FRIEND_CODE_LENGTH

_NON_DIGITS = re.compile(r"\D")


def normalize_friend_code(code: str) -> str:
    """Strip everything that is not a digit."""
    return _NON_DIGITS.sub("", code or "")


def is_valid_friend_code(code: str) -> bool:
    """True when the code has exactly ``FRIEND_CODE_LENGTH`` digits once separators are removed."""
    return len(normalize_friend_code(code)) == FRIEND_CODE_LENGTH


def format_friend_code(code: str | None) -> str:
    """Group a friend code into blocks of four digits.

    Codes that are not valid are returned unchanged.
    """
    if not code:
        return ""
    if not is_valid_friend_code(code):
        return code
    digits = normalize_friend_code(code)
    return "-".join(digits[i : i + 4] for i in range(0, len(digits), 4))
