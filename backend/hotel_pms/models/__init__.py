# Ontology Models
from hotel_pms.models.ontology import (
    Room, Guest, Booking, BookingCharge, Staff
)

__all__ = [
    'Room', 'Guest', 'Booking', 'BookingCharge', 'Staff'
]
