"""
Django signals for authentication.

This module defines signal handlers for:
- Auto-creating VendorProfile when a vendor User is saved
- Assigning a referral code to new users

Related files:
    - models.py: User and VendorProfile models
    - apps.py: Signal import in ready()
"""

import logging

from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver

from core.helpers import generate_referral_code

logger = logging.getLogger(__name__)


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_vendor_profile(sender, instance, created, **kwargs):
    """
    Ensure vendor users have a VendorProfile.

    Runs on every save so a client promoted to vendor also gets one.
    """
    if not instance.is_vendor:
        return

    from authentication.models import VendorProfile

    _, profile_created = VendorProfile.objects.get_or_create(user=instance)
    if profile_created:
        logger.debug(f"VendorProfile created for user: {instance.email}")


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def assign_referral_code(sender, instance, created, **kwargs):
    """Give every new user a unique referral code."""
    if not created or instance.referral_code:
        return

    user_model = type(instance)
    code = generate_referral_code()
    while user_model.objects.filter(referral_code=code).exists():
        code = generate_referral_code()

    user_model.objects.filter(pk=instance.pk).update(referral_code=code)
    instance.referral_code = code
