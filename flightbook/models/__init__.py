from .models import *

__all__ = [
    "Base",
    "ROLE_USER",
    "ROLE_ADMIN",
    "User",
    "Flight",
    "Booking",
    "BookedSeat",
    "AuditLog",
]
