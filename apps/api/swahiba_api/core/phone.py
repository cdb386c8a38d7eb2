"""Phone number canonicalization.

Every component keys on the canonical form, so normalization must be a
pure, idempotent function: ``normalize_phone(normalize_phone(x)) ==
normalize_phone(x)``.
"""

import re

from swahiba_api.config import settings

_NON_DIGITS = re.compile(r"\D")
# Local subscriber numbers without trunk prefix (mobile ranges 6x / 7x)
_LOCAL_SUBSCRIBER = re.compile(r"^[67]\d{8}$")
_CANONICAL = re.compile(r"^\+\d{7,15}$")


def normalize_phone(raw: str | None, country_code: str | None = None) -> str:
    """Canonicalize free-form phone input.

    Rules, in order:
    - keep only digits (and a leading ``+``)
    - ``+``-prefixed input is already international
    - input starting with the country calling code gets a ``+``
    - a 10-digit trunk number ``0XXXXXXXXX`` becomes ``+<cc>XXXXXXXXX``
    - a 9-digit local subscriber number gets ``+<cc>`` prepended

    Anything else is returned as bare digits. Empty input yields "".
    """
    cc = country_code or settings.country_calling_code
    stripped = (raw or "").strip()
    digits = _NON_DIGITS.sub("", stripped)
    if not digits:
        return ""

    if stripped.lstrip("(").startswith("+"):
        return f"+{digits}"
    if digits.startswith(cc):
        return f"+{digits}"
    if digits.startswith("0") and len(digits) == 10:
        return f"+{cc}{digits[1:]}"
    if _LOCAL_SUBSCRIBER.match(digits):
        return f"+{cc}{digits}"
    return digits


def is_canonical_phone(phone: str) -> bool:
    """True for ``+`` followed by 7-15 digits (E.164 shape)."""
    return bool(_CANONICAL.match(phone))
