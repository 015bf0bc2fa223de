"""Domain Enums"""
from enum import Enum


class RoomType(str, Enum):
    SINGLE = "single"
    DOUBLE = "double"
    SUITE = "suite"
    DELUXE = "deluxe"
    FAMILY = "family"
    PRESIDENTIAL = "presidential"
    STANDARD = "standard"
    PREMIUM = "premium"


class RoomStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"
    CLEANING = "cleaning"
    OUT_OF_ORDER = "out_of_order"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    CONVERTED_TO_BOOKING = "converted_to_booking"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    STRIPE = "stripe"
    PAYPAL = "paypal"
    BANK_TRANSFER = "bank_transfer"


class UserRole(str, Enum):
    GUEST = "guest"
    STAFF = "staff"
    ADMIN = "admin"


class ClaimKind(str, Enum):
    BOOKING = "booking"
    RESERVATION = "reservation"
