from fitpass.billing.bookings.service import BookingService

__all__ = ["BookingService"]
