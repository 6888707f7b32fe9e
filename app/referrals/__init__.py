"""
Referrals app: referral codes and first-booking bonuses.
"""
