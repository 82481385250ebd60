from tripseller.services.booking_service import BookingService
from tripseller.services.coin_service import CoinService
from tripseller.services.commission_ledger import CommissionLedger
from tripseller.services.notification_service import NotificationService
from tripseller.services.payment_status_service import PaymentStatusService
from tripseller.services.platform_service import PlatformService

__all__ = [
    "BookingService",
    "CoinService",
    "CommissionLedger",
    "NotificationService",
    "PaymentStatusService",
    "PlatformService",
]
