import re
import secrets
from typing import Iterable, List, Union

PHONE_SHAPE = re.compile(r"^[\d\s+\-()]+$")


def format_phone_number(phone: str) -> str:
    """
    Format phone number to digits only
    Removes +, -, spaces, parentheses
    """
    return re.sub(r"[^\d]", "", phone or "")


def looks_like_phone_number(value: str) -> bool:
    """Digits with optional +, -, spaces or parentheses, and at least one digit"""
    return bool(PHONE_SHAPE.match(value or "")) and any(ch.isdigit() for ch in value)


def is_valid_phone_number(phone: str) -> bool:
    """Validate WhatsApp number (10-14 digits)"""
    formatted = format_phone_number(phone)
    return 10 <= len(formatted) <= 14


def normalize_code(code: str) -> str:
    """Key used for case-insensitive code comparison"""
    return (code or "").strip().lower()


def parse_code_lines(source: Union[str, Iterable[str]]) -> List[str]:
    """
    Accept either newline-separated text or a list of codes.
    Entries are trimmed, blanks dropped, order kept.
    """
    if isinstance(source, str):
        source = source.splitlines()
    return [entry.strip() for entry in source if entry and entry.strip()]


def generate_voucher_code(length: int = 8) -> str:
    """Random numeric code, used only when fabrication is enabled"""
    return "".join(secrets.choice("0123456789") for _ in range(length))


def format_currency(amount: int) -> str:
    """Format minor units as rupiah, e.g. Rp 10.000"""
    return "Rp " + f"{amount:,}".replace(",", ".")
