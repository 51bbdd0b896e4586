"""Field normalisation and format checks used by the request schemas."""

import re

NAME_RE = re.compile(r"^[A-Za-z]+(?: [A-Za-z]+)*$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^\+?[0-9]{10,15}$")
HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")
PASSWORD_SYMBOL_RE = re.compile(r"[^A-Za-z0-9]")


def capitalize_words(value: str) -> str:
    """'jane  DOE' -> 'Jane Doe'"""
    return " ".join(word[:1].upper() + word[1:].lower() for word in value.split())


def person_name(value: str, min_length: int = 2) -> str:
    value = " ".join(value.split())
    if len(value) < min_length:
        raise ValueError(f"must be at least {min_length} characters long")
    if not NAME_RE.match(value):
        raise ValueError("must contain letters only")
    return capitalize_words(value)


def email_address(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_RE.match(value):
        raise ValueError("is not a valid email address")
    return value


def strong_password(value: str) -> str:
    if len(value) < 8:
        raise ValueError("must be at least 8 characters long")
    if not any(c.isupper() for c in value):
        raise ValueError("must contain an uppercase letter")
    if not any(c.isdigit() for c in value):
        raise ValueError("must contain a number")
    if not PASSWORD_SYMBOL_RE.search(value):
        raise ValueError("must contain a special character")
    return value


def min_password(value: str) -> str:
    if len(value) < 8:
        raise ValueError("must be at least 8 characters long")
    return value


def phone_number(value: str) -> str:
    value = value.strip()
    if not PHONE_RE.match(value):
        raise ValueError("must be 10 to 15 digits, optionally starting with +")
    return value


def is_hex_color(value: str) -> bool:
    return bool(HEX_COLOR_RE.match(value or ""))
