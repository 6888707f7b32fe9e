"""
Authentication application.

Identity for the booking core: the email-based User with a role, and the
VendorProfile that bookings read (verification, service mode, location).

Usage:
    from authentication.models import User, UserRole, VendorProfile
"""
