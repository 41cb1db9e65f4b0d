# API Routers
from hotel_pms.routers import auth, bookings, rooms, guests, public

__all__ = ['auth', 'bookings', 'rooms', 'guests', 'public']
