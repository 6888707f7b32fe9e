"""
Tests for booking price computation.
"""

from types import SimpleNamespace

import pytest

from bookings.pricing import calculate_distance_charge, quote_booking


class TestCalculateDistanceCharge:
    @pytest.mark.parametrize(
        "distance_km,charge",
        [
            (0, 1000),
            (3, 1000),
            (5, 1000),
            (5.01, 2000),
            (10, 2000),
            (12, 3000),
        ],
    )
    def test_default_tariff(self, distance_km, charge):
        assert calculate_distance_charge(distance_km) == charge

    def test_custom_tariff(self):
        assert calculate_distance_charge(7, base_km=2, base_charge=500) == 2000

    def test_reads_settings(self, settings):
        settings.DISTANCE_BASE_KM = 10
        settings.DISTANCE_BASE_CHARGE = 1500

        assert calculate_distance_charge(15) == 3000


def profile(vendor_type_travels=True, latitude=6.5244, longitude=3.3792):
    return SimpleNamespace(
        offers_home_service=vendor_type_travels,
        latitude=latitude,
        longitude=longitude,
        has_location=latitude is not None and longitude is not None,
    )


class TestQuoteBooking:
    service = SimpleNamespace(base_price=5000)

    def test_home_service_adds_distance_charge(self):
        quote = quote_booking(self.service, profile(), 6.5300, 3.3800)

        assert quote.distance_km < 5
        assert quote.distance_charge == 1000
        assert quote.total_amount == 6000

    def test_in_shop_has_no_distance_charge(self):
        quote = quote_booking(self.service, profile(vendor_type_travels=False), 6.53, 3.38)

        assert quote.distance_charge == 0
        assert quote.distance_km is None
        assert quote.total_amount == 5000

    def test_missing_vendor_location(self):
        quote = quote_booking(self.service, profile(latitude=None, longitude=None), 6.53, 3.38)

        assert quote.distance_charge == 0

    def test_missing_client_location(self):
        quote = quote_booking(self.service, profile())

        assert quote.total_amount == 5000

    def test_far_client(self):
        """About 12 km from central Lagos should cost three base charges."""
        quote = quote_booking(self.service, profile(), 6.6324, 3.3792)

        assert 11 < quote.distance_km < 13
        assert quote.distance_charge == 3000
