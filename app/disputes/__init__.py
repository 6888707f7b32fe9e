"""
Disputes app: booking disputes and the resolution that settles escrow.
"""
