"""PII pattern matchers.

Finds email addresses, phone numbers, IP addresses and credit-card numbers in
plain text and reports each as a :class:`PiiMatch` with half-open character
offsets. Matchers keep no state between calls.

Public interface:
  - find_emails / find_phones / find_ip_addresses / find_credit_cards
  - find_all_pii(text) -> list[PiiMatch] sorted by start_index
  - deduplicate_matches(matches) -> greedy leftmost non-overlapping subset
  - luhn_checksum_valid(number) -> bool
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum


class PiiType(str, Enum):
    EMAIL = "email"
    PHONE = "phone"
    IP = "ip"
    CREDIT_CARD = "credit_card"


@dataclass(frozen=True)
class PiiMatch:
    """A PII candidate located in the text."""
    type: PiiType
    text: str
    start_index: int
    end_index: int  # exclusive


# All patterns are ASCII-only: \d means [0-9], \b is an ASCII word boundary.

_EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}", re.ASCII)

_PHONE_RES = (
    # North America: (555) 123-4567, 555.123.4567, +1-555-123-4567
    re.compile(r"(?:\+?1[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}", re.ASCII),
    # Short form: 555-1234
    re.compile(r"\d{3}[-.\s]\d{4}", re.ASCII),
)

# Digit runs that look like phone numbers but are keyboard sequences
_SEQUENTIAL_DIGITS = frozenset({"0123456789", "1234567890", "9876543210"})

# Coarse dotted quad; octet range is checked afterwards
_IPV4_RE = re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b", re.ASCII)

_HEX_GROUP = r"[0-9a-fA-F]{1,4}"
_IPV6_RE = re.compile(
    r"(?<![0-9A-Za-z:])(?:"
    rf"(?:{_HEX_GROUP}:){{7}}{_HEX_GROUP}"            # full 8 groups
    rf"|(?:{_HEX_GROUP}:){{1,6}}(?::{_HEX_GROUP}){{1,6}}"  # compressed middle
    rf"|(?:{_HEX_GROUP}:){{1,7}}:"                    # trailing ::
    rf"|::(?:{_HEX_GROUP}:){{0,6}}{_HEX_GROUP}"        # leading ::
    r")(?![0-9A-Za-z:])",
    re.ASCII,
)

_CREDIT_CARD_RE = re.compile(
    r"\b(?:\d{4}[-\s]?){3}\d{4}(?:[-\s]?\d{3})?\b"  # 4-4-4-4 with optional 3-digit tail
    r"|\b\d{13,19}\b",
    re.ASCII,
)

_CARD_MIN_DIGITS = 13
_CARD_MAX_DIGITS = 19


def _digits_only(text: str) -> str:
    return re.sub(r"\D", "", text, flags=re.ASCII)


def luhn_checksum_valid(number: str) -> bool:
    """Validate a card number with the Luhn algorithm.

    Non-digit characters are ignored. Numbers with fewer than 13 or more than
    19 digits are rejected before the checksum is computed.
    """
    digits = _digits_only(number)
    if not _CARD_MIN_DIGITS <= len(digits) <= _CARD_MAX_DIGITS:
        return False

    total = 0
    for position, char in enumerate(reversed(digits)):
        digit = int(char)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def deduplicate_matches(matches: Iterable[PiiMatch]) -> list[PiiMatch]:
    """Drop matches that overlap an earlier kept match.

    Candidates are ordered by start index; a match survives only if it starts
    at or after the end of the last surviving match.
    """
    kept: list[PiiMatch] = []
    for match in sorted(matches, key=lambda m: m.start_index):
        if not kept or match.start_index >= kept[-1].end_index:
            kept.append(match)
    return kept


def _to_match(pii_type: PiiType, m: re.Match) -> PiiMatch:
    return PiiMatch(type=pii_type, text=m.group(0), start_index=m.start(), end_index=m.end())


def find_emails(text: str) -> list[PiiMatch]:
    return [_to_match(PiiType.EMAIL, m) for m in _EMAIL_RE.finditer(text)]


def find_phones(text: str) -> list[PiiMatch]:
    """Find phone numbers from both phone patterns, without overlaps."""
    candidates: list[PiiMatch] = []
    for pattern in _PHONE_RES:
        for m in pattern.finditer(text):
            if _digits_only(m.group(0)) in _SEQUENTIAL_DIGITS:
                continue
            candidates.append(_to_match(PiiType.PHONE, m))
    return deduplicate_matches(candidates)


def _valid_ipv4(candidate: str) -> bool:
    return all(0 <= int(octet) <= 255 for octet in candidate.split("."))


def find_ip_addresses(text: str) -> list[PiiMatch]:
    """Find IPv4 addresses (octets 0-255) followed by IPv6 addresses."""
    matches = [
        _to_match(PiiType.IP, m)
        for m in _IPV4_RE.finditer(text)
        if _valid_ipv4(m.group(0))
    ]
    matches.extend(_to_match(PiiType.IP, m) for m in _IPV6_RE.finditer(text))
    return matches


def find_credit_cards(text: str) -> list[PiiMatch]:
    return [
        _to_match(PiiType.CREDIT_CARD, m)
        for m in _CREDIT_CARD_RE.finditer(text)
        if luhn_checksum_valid(m.group(0))
    ]


def find_all_pii(text: str) -> list[PiiMatch]:
    """Run every matcher and return the union sorted by start index.

    Overlaps between categories are kept (a card number can also be reported
    as a phone number).
    """
    all_matches = [
        *find_emails(text),
        *find_phones(text),
        *find_ip_addresses(text),
        *find_credit_cards(text),
    ]
    return sorted(all_matches, key=lambda m: m.start_index)
