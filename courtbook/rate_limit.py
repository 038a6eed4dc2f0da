"""
Rate limiting configuration using slowapi.

Two tiers:
  • write   – 20/min (booking writes, recurring batches, group schedules)
  • default – 60/min (conflict checks polled by the booking form)

The limiter keys on client IP by default.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, default_limits=["60/minute"])

# Named rate strings for use in @limiter.limit() decorators
WRITE = "20/minute"      # endpoints that create bookings
DEFAULT = "60/minute"    # general API
