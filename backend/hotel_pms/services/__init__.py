# Business Services
from hotel_pms.services.room_service import RoomService
from hotel_pms.services.guest_service import GuestService
from hotel_pms.services.booking_service import BookingService
from hotel_pms.services.staff_service import StaffService
from hotel_pms.services.public_reservation_service import PublicReservationService

__all__ = [
    'RoomService', 'GuestService', 'BookingService', 'StaffService',
    'PublicReservationService'
]
