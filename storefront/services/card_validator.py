"""
Card detail validation.

Pure functions with no I/O. Malformed input is reported as invalid, never
raised; deciding what an invalid card means for checkout is the caller's job.
"""
import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

from storefront.models.enums import CardBrand

_CARD_NUMBER_RE = re.compile(r"^\d{13,19}$")
_SEPARATORS_RE = re.compile(r"[\s-]+")


def normalize(card_number) -> str:
    """Strip whitespace and dashes"""
    if card_number is None:
        return ""
    return _SEPARATORS_RE.sub("", str(card_number))


def is_valid_format(card_number) -> bool:
    return bool(_CARD_NUMBER_RE.match(normalize(card_number)))


def luhn_check(card_number) -> bool:
    """Standard mod-10 checksum, doubling every second digit from the right"""
    digits = normalize(card_number)
    if not digits or not digits.isdigit():
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


def card_brand(card_number) -> CardBrand:
    digits = normalize(card_number)
    if digits.startswith("4"):
        return CardBrand.VISA
    if digits[:2] in ("51", "52", "53", "54", "55"):
        return CardBrand.MASTERCARD
    if digits[:2] in ("34", "37"):
        return CardBrand.AMEX
    if digits.startswith("6011") or digits.startswith("65"):
        return CardBrand.DISCOVER
    return CardBrand.UNKNOWN


def _as_int(value) -> Optional[int]:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def is_valid_expiry(month, year, reference_date: Optional[date] = None) -> bool:
    """
    A card is valid through the last day of its expiry month.
    
    Compared at calendar-month granularity against ``reference_date``
    (today by default).
    """
    exp_month = _as_int(month)
    exp_year = _as_int(year)
    if exp_month is None or exp_year is None:
        return False
    if exp_month < 1 or exp_month > 12:
        return False
    
    today = reference_date or date.today()
    if exp_year < today.year:
        return False
    if exp_year == today.year and exp_month < today.month:
        return False
    return True


def is_valid_cvv(cvv, brand) -> bool:
    """Four digits for amex, three for every other brand"""
    if cvv is None:
        return False
    cvv = str(cvv).strip()
    if not cvv.isdigit():
        return False
    expected = 4 if brand == CardBrand.AMEX else 3
    return len(cvv) == expected


@dataclass(frozen=True)
class CardCheck:
    """Outcome of the ordered checkout checks"""
    valid: bool
    reason: Optional[str] = None
    brand: CardBrand = CardBrand.UNKNOWN
    last4: Optional[str] = None


def check_card(card_number, expiry_month, expiry_year, cvv, reference_date: Optional[date] = None) -> CardCheck:
    """
    Run format, Luhn, brand, expiry and CVV checks in that order.
    
    The first failing check wins and its reason is returned.
    """
    if not is_valid_format(card_number):
        return CardCheck(valid=False, reason="Invalid card number format")
    if not luhn_check(card_number):
        return CardCheck(valid=False, reason="Invalid card number")
    
    brand = card_brand(card_number)
    if brand == CardBrand.UNKNOWN:
        return CardCheck(valid=False, reason="Unsupported card type")
    if not is_valid_expiry(expiry_month, expiry_year, reference_date):
        return CardCheck(valid=False, reason="Card has expired or invalid expiry date", brand=brand)
    if not is_valid_cvv(cvv, brand):
        return CardCheck(valid=False, reason="Invalid CVV", brand=brand)
    
    return CardCheck(valid=True, brand=brand, last4=normalize(card_number)[-4:])
