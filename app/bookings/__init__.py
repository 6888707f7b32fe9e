"""
Bookings app: the booking state machine and its REST API.
"""
