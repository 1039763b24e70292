"""
Rate limiting configuration using slowapi.

Three tiers:
  • booking – 5/min  (public reservation requests, each sends an email)
  • confirm – 10/min (confirmation links, prevents token guessing)
  • default – 60/min (everything else)

The limiter keys on client IP by default.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Named rate strings for use in @limiter.limit() decorators
BOOKING = "5/minute"     # public reservation creation
CONFIRM = "10/minute"    # confirmation token
DEFAULT = "60/minute"    # general API

limiter = Limiter(key_func=get_remote_address, default_limits=[DEFAULT])
