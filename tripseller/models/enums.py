from enum import Enum


class StrEnum(str, Enum):
    def __str__(self):
        return self.value

    @classmethod
    def values(cls):
        return [member.value for member in cls]


class UserRole(StrEnum):
    ADMIN = "admin"
    SELLER = "seller"
    CUSTOMER = "customer"


class SellerStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


class CommissionType(StrEnum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class BookingStatus(StrEnum):
    PENDING = "pending"
    INPROGRESS = "inprogress"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class PaymentStatus(StrEnum):
    PENDING = "pending"
    PARTIAL = "partial"
    COMPLETED = "completed"
    REFUNDED = "refunded"


class CommissionPaymentType(StrEnum):
    PARTIAL = "partial_commission"
    FINAL = "final_commission"


class CommissionPaymentStatus(StrEnum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class CoinTransactionType(StrEnum):
    EARN = "earn"
    BONUS = "bonus"
    ADJUSTMENT = "adjustment"
    REDEEM = "redeem"


class CoinSourceType(StrEnum):
    BOOKING = "booking"
    ADMIN = "admin"
    REDEMPTION = "redemption"


class RedemptionStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


# Bookings in these lifecycle states hold a seat on their schedule.
SEAT_HOLDING_STATUSES = (BookingStatus.PENDING.value, BookingStatus.INPROGRESS.value, BookingStatus.APPROVED.value)
