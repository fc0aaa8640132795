import re
from typing import Any

_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE = re.compile(r"^[+]?[0-9 ()-]{7,15}$")
_UK_POSTCODE = re.compile(r"^[A-Z]{1,2}[0-9]{1,2}[A-Z]?\s?[0-9][A-Z]{2}$", re.IGNORECASE)
_CRN = re.compile(r"^[0-9]{7,8}$")
_CITY = re.compile(r"^[a-zA-Z\s\-]+$")
_WEBSITE = re.compile(r"^https://.+\..+")
_IBAN_PREFIX = re.compile(r"^[A-Z]{2}")
_IBAN_BODY = re.compile(r"^[A-Z]{2}[0-9A-Z]+$")
_SWIFT_BIC = re.compile(r"^[A-Z]{4}[A-Z]{2}[A-Z0-9]{2}([A-Z0-9]{3})?$")


def _digits(value: str, stripped: str = r"\s") -> str:
    return re.sub(stripped, "", value)


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def as_text(value: Any) -> str:
    if value is None:
        return ""
    return value.strip() if isinstance(value, str) else str(value).strip()


def as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.replace(",", "").strip())
        except ValueError:
            return None
    return None


def is_email(value: str) -> bool:
    return bool(_EMAIL.match(value))


def is_phone(value: str) -> bool:
    return bool(_PHONE.match(value))


def is_uk_postcode(value: str) -> bool:
    return bool(_UK_POSTCODE.match(value.strip()))


def is_crn(value: str) -> bool:
    return bool(_CRN.match(_digits(value)))


def is_city(value: str) -> bool:
    return bool(_CITY.match(value))


def is_https_url(value: str) -> bool:
    return bool(_WEBSITE.match(value))


def is_sort_code(value: str) -> bool:
    return bool(re.fullmatch(r"[0-9]{6}", _digits(value, r"[\s-]")))


def is_account_number(value: str) -> bool:
    return bool(re.fullmatch(r"[0-9]{8}", value.strip()))


def is_vat_number(value: str) -> bool:
    cleaned = _digits(value).upper()
    if cleaned.startswith("GB"):
        cleaned = cleaned[2:]
    return bool(re.fullmatch(r"[0-9]{9}|[0-9]{12}", cleaned))


def is_utr(value: str) -> bool:
    return bool(re.fullmatch(r"[0-9]{10}", _digits(value)))


def is_duns(value: str) -> bool:
    return bool(re.fullmatch(r"[0-9]{9}", _digits(value, r"[\s-]")))


def is_routing_number(value: str) -> bool:
    return bool(re.fullmatch(r"[0-9]{9}", _digits(value)))


def iban_length_ok(value: str) -> bool:
    return 15 <= len(_digits(value)) <= 34


def is_iban(value: str) -> bool:
    cleaned = _digits(value).upper()
    return iban_length_ok(cleaned) and bool(_IBAN_PREFIX.match(cleaned)) and bool(
        _IBAN_BODY.match(cleaned)
    )


def swift_length_ok(value: str) -> bool:
    return len(_digits(value)) in (8, 11)


def is_swift_bic(value: str) -> bool:
    cleaned = _digits(value).upper()
    return swift_length_ok(cleaned) and bool(_SWIFT_BIC.match(cleaned))
