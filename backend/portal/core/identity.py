"""
Identity normalization for exam candidates.

A candidate is identified by the (email, phone) pair. Both parts are
canonicalized so that "A@X.com " and "a@x.com", or "+91 98765-43210" and
"9876543210", resolve to the same exam session.
"""
import re
from typing import NamedTuple

from portal.core.exceptions import InvalidInputError

PHONE_DIGITS = 10

# ASCII only: str patterns treat other scripts' digits as \d
_NON_DIGITS = re.compile(r"[^0-9]")


class Identity(NamedTuple):
    """Normalized (email, phone) pair."""

    email: str
    phone: str


def normalize_email(email: str) -> str:
    """Trim surrounding whitespace and lower-case an email address."""
    return email.strip().lower()


def normalize_phone(phone: str) -> str:
    """
    Strip every non-digit character from a phone number.

    When more than 10 digits remain (country-code prefixes such as "+91"),
    only the last 10 are kept. Shorter results are returned unchanged.
    """
    digits = _NON_DIGITS.sub("", phone)
    if len(digits) > PHONE_DIGITS:
        return digits[-PHONE_DIGITS:]
    return digits


def normalize_identity(email: str, phone: str, strict: bool = True) -> Identity:
    """
    Normalize an (email, phone) pair into an Identity.

    Args:
        email: Raw email as entered by the candidate
        phone: Raw phone number as entered by the candidate
        strict: When True, reject phones that do not normalize to exactly
            10 digits and empty emails. Lookups pass False; a malformed
            phone then simply matches nothing.

    Returns:
        The normalized identity

    Raises:
        InvalidInputError: If strict and the input cannot form a valid identity
    """
    identity = Identity(normalize_email(email), normalize_phone(phone))
    if strict:
        if not identity.email:
            raise InvalidInputError("Email is required")
        if len(identity.phone) != PHONE_DIGITS:
            raise InvalidInputError("Phone number must be exactly 10 digits")
    return identity
