"""
Identity field normalisation shared by the row parser and the contact index.

All functions are pure and never raise on bad input: unusable values come back
as an empty string, an empty list or None.
"""

import re
import unicodedata
from typing import Iterable, List, Optional


# 9-digit local mobile numbers with these operator codes get the 375 country code
LOCAL_MOBILE_PREFIXES = ("25", "29", "33", "44")
LOCAL_COUNTRY_CODE = "375"
MIN_PHONE_DIGITS = 9
MAX_PHONE_DIGITS = 15

TELEGRAM_MIN_LENGTH = 5
TELEGRAM_MAX_LENGTH = 32

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_TELEGRAM_RE = re.compile(r"^[a-z0-9_]+$", re.IGNORECASE)
_MULTI_VALUE_SPLIT_RE = re.compile(r"[,;\s]+")
_PLACEHOLDERS = {"-", "—", "n/a", "nan", "none", "null"}


def is_blank(value: Optional[str]) -> bool:
    if value is None:
        return True
    text = str(value).strip()
    return not text or text.lower() in _PLACEHOLDERS


def normalize_phone(raw: Optional[str]) -> str:
    """
    Reduce a phone number to its canonical digit string.

    "+375 (29) 123-45-67", "80291234567", "291234567" -> "375291234567"
    "8 916 123 45 67" -> "79161234567"
    """
    if is_blank(raw):
        return ""

    digits = re.sub(r"\D", "", str(raw))

    if len(digits) == 11 and digits.startswith("80"):
        # Belarusian domestic trunk prefix: 80 + operator code + number
        digits = LOCAL_COUNTRY_CODE + digits[2:]
    elif len(digits) == 11 and digits.startswith("8"):
        digits = "7" + digits[1:]

    if len(digits) == 9 and digits[:2] in LOCAL_MOBILE_PREFIXES:
        digits = LOCAL_COUNTRY_CODE + digits

    return digits


def normalize_email(raw: Optional[str]) -> str:
    if is_blank(raw):
        return ""
    return str(raw).strip().lower()


def is_valid_email(value: str) -> bool:
    return bool(value) and bool(_EMAIL_RE.match(value))


def normalize_name(raw: Optional[str]) -> str:
    """Lowercase and keep letters of any script plus single spaces."""
    if is_blank(raw):
        return ""
    text = unicodedata.normalize("NFC", str(raw)).lower()
    kept = "".join(ch if ch.isalpha() or ch.isspace() else " " for ch in text)
    return " ".join(kept.split())


def name_key(raw: Optional[str]) -> str:
    """Word-order independent lookup key for a full name."""
    normalized = normalize_name(raw).replace("ё", "е")
    return " ".join(sorted(normalized.split()))


def clean_telegram_username(raw: Optional[str]) -> Optional[str]:
    """
    Clean a Telegram handle. Returns None for anything that is not a plain
    username (URLs, placeholders, wrong length or charset).
    """
    if is_blank(raw):
        return None
    value = str(raw).strip()
    lowered = value.lower()
    if "://" in lowered or lowered.startswith(("www.", "t.me/", "telegram.me/")):
        return None
    value = value.lstrip("@")
    if not TELEGRAM_MIN_LENGTH <= len(value) <= TELEGRAM_MAX_LENGTH:
        return None
    if not _TELEGRAM_RE.match(value):
        return None
    return value.lower()


def split_multi_value(raw: Optional[str]) -> List[str]:
    """Split a cell holding several values separated by comma, semicolon or whitespace."""
    if is_blank(raw):
        return []
    return [part for part in _MULTI_VALUE_SPLIT_RE.split(str(raw).strip()) if part]


def collect_emails(cells: Iterable[Optional[str]]) -> List[str]:
    """Valid, normalised, de-duplicated emails from several cells, in cell order."""
    seen: List[str] = []
    for cell in cells:
        for part in split_multi_value(cell):
            email = normalize_email(part)
            if is_valid_email(email) and email not in seen:
                seen.append(email)
    return seen


def collect_phones(cells: Iterable[Optional[str]]) -> List[str]:
    """
    Valid, normalised, de-duplicated phones from several cells, in cell order.

    A single phone is routinely written with spaces ("+375 29 111 22 33"), so
    whitespace only separates values when the chunk holds more digits than one
    E.164 number can.
    """
    seen: List[str] = []
    for cell in cells:
        if is_blank(cell):
            continue
        for part in re.split(r"[,;]+", str(cell)):
            if len(re.sub(r"\D", "", part)) > MAX_PHONE_DIGITS:
                candidates = part.split()
            else:
                candidates = [part]
            for candidate in candidates:
                phone = normalize_phone(candidate)
                if MIN_PHONE_DIGITS <= len(phone) <= MAX_PHONE_DIGITS and phone not in seen:
                    seen.append(phone)
    return seen
