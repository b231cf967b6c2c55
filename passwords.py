from __future__ import annotations

import re
import secrets
import string

from werkzeug.security import check_password_hash, generate_password_hash

from utils import ValidationError


MIN_LENGTH = 10
MAX_LENGTH = 256

_CLASSES = (
    re.compile(r"[a-z]"),
    re.compile(r"[A-Z]"),
    re.compile(r"\d"),
    re.compile(r"[^A-Za-z0-9]"),
)

_TEMP_ALPHABET = string.ascii_letters + string.digits + "!@#$%^&*()_+"


def validate_password_policy(password: str) -> str:
    pwd = str(password or "")
    if not pwd:
        raise ValidationError("Missing password", details={"field": "password"})
    if len(pwd) < MIN_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_LENGTH} characters", details={"field": "password"})
    if len(pwd) > MAX_LENGTH:
        raise ValidationError("Password is too long", details={"field": "password"})
    if not all(rx.search(pwd) for rx in _CLASSES):
        raise ValidationError(
            "Password must include uppercase, lowercase, number, and special character",
            details={"field": "password"},
        )
    return pwd


def generate_temporary_password(length: int = 16) -> str:
    length = max(MIN_LENGTH, int(length))
    while True:
        pwd = "".join(secrets.choice(_TEMP_ALPHABET) for _ in range(length))
        if all(rx.search(pwd) for rx in _CLASSES):
            return pwd


def hash_password(password: str) -> str:
    pwd = validate_password_policy(password)
    # Werkzeug 3 defaults to scrypt; pin explicitly for stability.
    return generate_password_hash(pwd, method="scrypt", salt_length=16)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return check_password_hash(str(password_hash), str(password or ""))
    except ValueError:
        return False
