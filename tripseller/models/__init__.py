from tripseller.models.booking import Booking
from tripseller.models.coin_redemption import CoinRedemption
from tripseller.models.coin_transaction import CoinTransaction
from tripseller.models.commission_payment import CommissionPayment
from tripseller.models.customer import Customer
from tripseller.models.notification import Notification
from tripseller.models.platform_setting import PlatformSetting
from tripseller.models.seller_coins import SellerCoins
from tripseller.models.trip import Trip, TripSchedule
from tripseller.models.user import UserProfile

__all__ = [
    "UserProfile",
    "Customer",
    "Trip",
    "TripSchedule",
    "Booking",
    "CommissionPayment",
    "SellerCoins",
    "CoinTransaction",
    "CoinRedemption",
    "Notification",
    "PlatformSetting",
]
