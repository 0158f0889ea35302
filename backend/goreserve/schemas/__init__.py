from .booking_request import BookingSlotRequest

__all__ = ["BookingSlotRequest"]
