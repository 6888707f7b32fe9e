"""
Booking price computation.

The distance tariff charges the base charge for anything inside the base
radius, then one more base charge for every started base radius beyond it:

    distance <= base_km          -> base_charge
    distance  > base_km          -> base_charge + ceil((d - base_km) / base_km) * base_charge

With the defaults (5 km, 1000): 3 km -> 1000, 5 km -> 1000, 5.01 km -> 2000,
12 km -> 3000.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from django.conf import settings

from core.helpers import haversine_km


def calculate_distance_charge(
    distance_km: float,
    base_km: float | None = None,
    base_charge: int | None = None,
) -> int:
    base_km = settings.DISTANCE_BASE_KM if base_km is None else base_km
    base_charge = settings.DISTANCE_BASE_CHARGE if base_charge is None else base_charge

    if distance_km <= base_km:
        return base_charge

    extra_units = math.ceil((distance_km - base_km) / base_km)
    return base_charge + extra_units * base_charge


@dataclass
class BookingQuote:
    service_price: int
    distance_charge: int
    distance_km: float | None

    @property
    def total_amount(self) -> int:
        return self.service_price + self.distance_charge


def quote_booking(service, vendor_profile, latitude=None, longitude=None) -> BookingQuote:
    """
    Price a booking for a service at an optional client location.

    A distance charge only applies when the vendor travels (home service)
    and both ends have coordinates.
    """
    distance_km = None
    distance_charge = 0

    travels = vendor_profile is not None and vendor_profile.offers_home_service
    has_client_location = latitude is not None and longitude is not None

    if travels and has_client_location and vendor_profile.has_location:
        distance_km = haversine_km(
            vendor_profile.latitude,
            vendor_profile.longitude,
            latitude,
            longitude,
        )
        distance_charge = calculate_distance_charge(distance_km)

    return BookingQuote(
        service_price=service.base_price,
        distance_charge=distance_charge,
        distance_km=distance_km,
    )
