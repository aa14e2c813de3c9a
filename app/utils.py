import re
import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional
from .config import settings


def utc_now() -> datetime:
    """Timezone-aware current UTC time for stored timestamps"""
    return datetime.now(timezone.utc)


# =========================
# JWT Token Handling
# =========================
def create_jwt_token(data: dict, expires_in: timedelta = timedelta(hours=24)) -> str:
    """Create JWT access token with expiration (24 hours by default)"""
    to_encode = data.copy()
    expire = datetime.utcnow() + expires_in
    to_encode.update({"exp": expire, "type": "access"})

    # Ensure SECRET_KEY is properly set
    if not settings.SECRET_KEY or settings.SECRET_KEY == "change-me-in-prod":
        raise ValueError("SECRET_KEY not properly configured")

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_jwt_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token"""
    if not settings.SECRET_KEY or settings.SECRET_KEY == "change-me-in-prod":
        return None
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


# =========================
# National ID (RUT)
# =========================
_RUT_CHARS = re.compile(r"^\d{7,8}[\dkK]$")


def clean_rut(rut: str) -> str:
    """Strip dots, dashes and spaces; upper-case the check digit."""
    return re.sub(r"[.\-\s]", "", rut or "").upper()


def rut_check_digit(body: str) -> str:
    total = 0
    factor = 2
    for digit in reversed(body):
        total += int(digit) * factor
        factor = 2 if factor == 7 else factor + 1
    remainder = 11 - (total % 11)
    if remainder == 11:
        return "0"
    if remainder == 10:
        return "K"
    return str(remainder)


def validate_rut(rut: str) -> bool:
    """Modulo-11 check of a Chilean RUT such as ``12.345.678-5``."""
    cleaned = clean_rut(rut)
    if not _RUT_CHARS.match(cleaned):
        return False
    return rut_check_digit(cleaned[:-1]) == cleaned[-1]


def format_rut(rut: str) -> str:
    """Canonical storage form: body, dash, check digit (``12345678-5``)."""
    cleaned = clean_rut(rut)
    return f"{cleaned[:-1]}-{cleaned[-1]}"
