"""
Helper functions for common infrastructure operations.

This module provides domain-agnostic utility functions for:
- Reference generation (payment, withdrawal, referral codes)
- Great-circle distance between coordinates
- Half-up rounding of monetary percentages
- HTTP request helpers (client IP extraction)

Usage:
    from core.helpers import generate_reference, haversine_km, percentage_of

    reference = generate_reference("PAY")     # PAY-1718000000000-9f2c1a7b
    km = haversine_km(6.45, 3.39, 6.52, 3.37)
    fee = percentage_of(6000, Decimal("10"))  # 600
"""

from __future__ import annotations

import math
import secrets
import string
import time
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from django.http import HttpRequest

EARTH_RADIUS_KM = 6371

REFERRAL_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_reference(prefix: str, random_bytes: int = 4) -> str:
    """
    Generate a unique, human-readable reference.

    Format: "{prefix}-{epoch_millis}-{random_hex}". The random suffix keeps
    references unique when two are generated in the same millisecond.

    Example:
        generate_reference("WTH")  # WTH-1718000000000-1a2b3c4d
    """
    millis = int(time.time() * 1000)
    return f"{prefix}-{millis}-{secrets.token_hex(random_bytes)}"


def generate_referral_code(length: int = 8) -> str:
    """Generate an uppercase alphanumeric referral code."""
    return "".join(secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(length))


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points, in kilometres.

    Rounded to 2 decimal places.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_KM * c, 2)


def percentage_of(amount: int, rate_percent: Decimal | int | float) -> int:
    """
    Return rate_percent of amount, rounded half up to a whole unit.

    Half-up (not banker's) rounding so 0.5 always rounds away from zero.

    Example:
        percentage_of(6000, 10)    # 600
        percentage_of(1005, 10)    # 101
    """
    value = Decimal(amount) * Decimal(str(rate_percent)) / Decimal(100)
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def get_client_ip(request: HttpRequest) -> str:
    """
    Extract client IP from request, handling proxies.

    Checks X-Forwarded-For header for proxy chains.
    """
    x_forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
    if x_forwarded_for:
        # Take the first IP in the chain (original client)
        ip = x_forwarded_for.split(",")[0].strip()
    else:
        ip = request.META.get("REMOTE_ADDR", "")
    return ip
