"""False-positive predicates referenced by name from pattern definitions."""

import re
from datetime import date
from typing import Dict

from ..core.exceptions import PatternCompilationError
from ..core.interfaces import FalsePositiveFilter

_NON_DIGITS = re.compile(r"\D")

# Area code prefixes that are never assigned
_INVALID_AREA_PREFIXES = ("000", "111", "222", "333", "444", "666", "777", "888", "999")

# Well-known published or sequential SSNs
_PLACEHOLDER_SSNS = frozenset({"123456789", "987654321", "078051120", "219099999"})


def _digits(text: str) -> str:
    return _NON_DIGITS.sub("", text)


def luhn_check(value: str) -> bool:
    """
    Validate a number with the Luhn checksum.

    Args:
        value: Card number, separators allowed

    Returns:
        True if the checksum is valid
    """
    digits = _digits(value)
    if not digits:
        return False

    total = 0
    for index, char in enumerate(reversed(digits)):
        digit = int(char)
        if index % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def iban_check(value: str) -> bool:
    """Validate an IBAN with the ISO 13616 mod-97 checksum."""
    iban = re.sub(r"\s", "", value).upper()
    if len(iban) < 15 or not iban.isalnum():
        return False
    rearranged = iban[4:] + iban[:4]
    numeric = "".join(str(int(char, 36)) for char in rearranged)
    return int(numeric) % 97 == 1


def _email_structure(text: str) -> bool:
    return (
        ".." not in text
        and not text.startswith(".")
        and not text.endswith(".")
        and text.count("@") == 1
    )


def _phone_digit_count(text: str) -> bool:
    digits = _digits(text)
    if text.startswith("+"):
        # ITU-T E.164
        return 7 <= len(digits) <= 15
    return 10 <= len(digits) <= 11


def _phone_area_code(text: str) -> bool:
    if text.startswith("+") and not text.startswith("+1"):
        return True
    digits = _digits(text)
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    return not digits.startswith(_INVALID_AREA_PREFIXES)


def _ssn_placeholder(text: str) -> bool:
    return _digits(text) not in _PLACEHOLDER_SSNS


def _card_placeholder(text: str) -> bool:
    return len(set(_digits(text))) > 1


def _ipv4_octets(text: str) -> bool:
    parts = text.split(".")
    return len(parts) == 4 and all(
        part.isdigit() and int(part) <= 255 for part in parts
    )


def _postal_code_placeholder(text: str) -> bool:
    zip5 = text.split("-")[0]
    return zip5 not in ("00000", "99999")


def _date_calendar(text: str) -> bool:
    month, day, year = (int(part) for part in re.split(r"[-/]", text))
    try:
        date(year, month, day)
    except ValueError:
        return False
    return True


FILTERS: Dict[str, FalsePositiveFilter] = {
    fp_filter.name: fp_filter
    for fp_filter in (
        FalsePositiveFilter("email_structure", _email_structure),
        FalsePositiveFilter("phone_digit_count", _phone_digit_count),
        FalsePositiveFilter("phone_area_code", _phone_area_code),
        FalsePositiveFilter("ssn_placeholder", _ssn_placeholder),
        FalsePositiveFilter("luhn_checksum", luhn_check, validates=True),
        FalsePositiveFilter("card_placeholder", _card_placeholder),
        FalsePositiveFilter("ipv4_octets", _ipv4_octets),
        FalsePositiveFilter("postal_code_placeholder", _postal_code_placeholder),
        FalsePositiveFilter("iban_checksum", iban_check, validates=True),
        FalsePositiveFilter("date_calendar", _date_calendar),
    )
}


def get_filter(name: str) -> FalsePositiveFilter:
    """
    Look up a predicate by name.

    Raises:
        PatternCompilationError: If no predicate has that name
    """
    try:
        return FILTERS[name]
    except KeyError:
        raise PatternCompilationError(f"Unknown false-positive filter: {name!r}")
