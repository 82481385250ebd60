from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import List, Optional

import sentry_sdk
from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from tripseller.errors import InsufficientBalance, InvalidInput, InvalidState, NotFound, PartialFailure
from tripseller.extensions import db
from tripseller.models import CoinRedemption, CoinTransaction, SellerCoins, UserProfile
from tripseller.models.base import utcnow
from tripseller.models.enums import CoinSourceType, CoinTransactionType, RedemptionStatus, UserRole
from tripseller.services.notification_service import NotificationService
from tripseller.services.platform_service import PlatformService

COIN = Decimal("0.01")


def _coins(value, label="Coin amount"):
    if isinstance(value, bool):
        raise InvalidInput(f"{label} must be a number.")
    try:
        parsed = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidInput(f"{label} must be a number.") from exc
    if not parsed.is_finite():
        raise InvalidInput(f"{label} must be a finite number.")
    return parsed.quantize(COIN)


@dataclass
class RedemptionResult:
    redemption: CoinRedemption
    transaction: Optional[CoinTransaction] = None
    warnings: List[str] = field(default_factory=list)

    def to_dict(self):
        payload = {"redemption": self.redemption.to_dict(), "warnings": self.warnings}
        if self.transaction is not None:
            payload["transaction"] = self.transaction.to_dict()
        return payload


class CoinService:
    @staticmethod
    def _wallet(seller_id, create=False):
        query = SellerCoins.query.filter_by(seller_id=seller_id).with_for_update()
        wallet = query.first()
        if wallet is not None or not create:
            return wallet

        wallet = SellerCoins(seller_id=seller_id, redeemable_balance=0, total_earned=0, total_redeemed=0)
        try:
            with db.session.begin_nested():
                db.session.add(wallet)
        except IntegrityError:
            wallet = query.first()
        return wallet

    @staticmethod
    def _swap_balance(seller_id, balance_before, values):
        """Write ``values`` to the wallet only while it still holds ``balance_before``.

        Balances are matched in whole cents since SQLite stores them as REAL.
        Returns the number of rows updated.
        """
        return SellerCoins.query.filter(
            SellerCoins.seller_id == seller_id,
            func.round(SellerCoins.redeemable_balance * 100) == int(balance_before * 100),
        ).update(values, synchronize_session=False)

    @staticmethod
    def _apply(seller_id, amount, transaction_type, source_type, source_id=None, description=None, details=None):
        """Append one coin transaction and move the wallet balance by the same amount.

        The wallet row is locked for the read and the balance UPDATE only matches
        the balance that was read, so the logged before/after values always
        reconcile with the wallet.
        """
        amount = _coins(amount)
        if amount == 0:
            raise InvalidInput("Coin amount cannot be zero.")

        wallet = CoinService._wallet(seller_id, create=amount > 0)
        balance_before = _coins(wallet.redeemable_balance if wallet else 0)
        balance_after = balance_before + amount
        if balance_after < 0:
            raise InsufficientBalance(
                f"Cannot deduct {abs(amount)} coins. Seller only has {balance_before} coins available."
            )

        values = {SellerCoins.redeemable_balance: balance_after}
        if transaction_type in (CoinTransactionType.EARN, CoinTransactionType.BONUS):
            values[SellerCoins.total_earned] = _coins(wallet.total_earned) + amount
        elif transaction_type is CoinTransactionType.REDEEM:
            values[SellerCoins.total_redeemed] = _coins(wallet.total_redeemed) - amount

        try:
            with db.session.begin_nested():
                entry = CoinTransaction(
                    seller_id=seller_id,
                    transaction_type=transaction_type.value,
                    source_type=source_type.value,
                    source_id=source_id,
                    amount=amount,
                    balance_before=balance_before,
                    balance_after=balance_after,
                    description=description,
                    details=details or {},
                )
                db.session.add(entry)
                db.session.flush()

                try:
                    affected = CoinService._swap_balance(seller_id, balance_before, values)
                except SQLAlchemyError as exc:
                    raise PartialFailure(
                        f"Balance update failed for seller {seller_id} after its coin transaction was written; "
                        "both were rolled back and the wallet needs checking."
                    ) from exc
                if affected == 0:
                    current = db.session.query(SellerCoins.redeemable_balance).filter_by(seller_id=seller_id).scalar()
                    if _coins(current or 0) + amount < 0:
                        raise InsufficientBalance(
                            f"Cannot deduct {abs(amount)} coins. Seller only has {_coins(current or 0)} coins available."
                        )
                    raise InvalidState("Coin balance changed while this request was running. Please retry.")
        except PartialFailure as exc:
            current_app.logger.error(
                "Coin balance update failed, transaction rolled back; check wallet: "
                "seller=%s amount=%s type=%s source=%s/%s",
                seller_id,
                amount,
                transaction_type.value,
                source_type.value,
                source_id,
            )
            sentry_sdk.capture_exception(exc)
            raise

        if wallet is not None:
            db.session.expire(wallet)
        return entry

    @staticmethod
    def balance(seller_id):
        wallet = SellerCoins.query.filter_by(seller_id=seller_id).first()
        if wallet is None:
            zero = Decimal("0.00")
            return {"redeemable_balance": zero, "total_earned": zero, "total_redeemed": zero}
        return {
            "redeemable_balance": _coins(wallet.redeemable_balance),
            "total_earned": _coins(wallet.total_earned),
            "total_redeemed": _coins(wallet.total_redeemed),
        }

    @staticmethod
    def transactions(seller_id, limit=50):
        return (
            CoinTransaction.query.filter_by(seller_id=seller_id)
            .order_by(CoinTransaction.created_at.desc(), CoinTransaction.id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def reconcile(seller_id):
        entries = (
            CoinTransaction.query.filter_by(seller_id=seller_id)
            .order_by(CoinTransaction.created_at.asc(), CoinTransaction.id.asc())
            .all()
        )
        for entry in entries:
            if _coins(entry.balance_before) + _coins(entry.amount) != _coins(entry.balance_after):
                return False
        expected = _coins(entries[-1].balance_after) if entries else Decimal("0.00")
        return CoinService.balance(seller_id)["redeemable_balance"] == expected

    @staticmethod
    def award(seller_id, amount, source_type=CoinSourceType.BOOKING, source_id=None, description=None):
        amount = _coins(amount)
        if amount <= 0:
            raise InvalidInput("Awarded coins must be positive.")
        return CoinService._apply(
            seller_id,
            amount,
            CoinTransactionType.EARN,
            source_type,
            source_id=source_id,
            description=description,
        )

    @staticmethod
    def adjust(seller_id, amount, description, actor, reason=None):
        if not (description or "").strip():
            raise InvalidInput("Description is required.")
        amount = _coins(amount)
        if amount == 0:
            raise InvalidInput("Amount cannot be zero.")

        seller = db.session.get(UserProfile, seller_id) if seller_id is not None else None
        if not seller or seller.role != UserRole.SELLER.value:
            raise NotFound("Seller not found.")

        entry = CoinService._apply(
            seller_id,
            amount,
            CoinTransactionType.BONUS if amount > 0 else CoinTransactionType.ADJUSTMENT,
            CoinSourceType.ADMIN,
            description=description.strip(),
            details={
                "adjusted_by": actor.id,
                "adjusted_by_email": actor.email,
                "reason": (reason or "").strip(),
                "manual_adjustment": True,
            },
        )
        db.session.commit()
        return entry

    @staticmethod
    def _pending_requested(seller_id):
        total = (
            db.session.query(func.coalesce(func.sum(CoinRedemption.coin_amount), 0))
            .filter(CoinRedemption.seller_id == seller_id)
            .filter(CoinRedemption.status == RedemptionStatus.PENDING.value)
            .scalar()
        )
        return _coins(total)

    @staticmethod
    def request_redemption(seller_id, coin_amount, bank_account):
        coin_amount = _coins(coin_amount)
        if coin_amount <= 0:
            raise InvalidInput("Invalid coin amount.")
        bank_account = (bank_account or "").strip()
        if not bank_account:
            raise InvalidInput("Bank account is required.")

        available = CoinService.balance(seller_id)["redeemable_balance"] - CoinService._pending_requested(seller_id)
        if coin_amount > available:
            raise InsufficientBalance(
                f"Insufficient coin balance: requested {coin_amount}, available {max(available, Decimal('0.00'))}."
            )

        conversion_rate = PlatformService.coin_conversion_rate()
        redemption = CoinRedemption(
            seller_id=seller_id,
            coin_amount=coin_amount,
            cash_amount=(coin_amount * conversion_rate).quantize(COIN),
            conversion_rate=conversion_rate,
            bank_account=bank_account,
            status=RedemptionStatus.PENDING.value,
        )
        db.session.add(redemption)
        db.session.commit()
        return redemption

    @staticmethod
    def _load_redemption(redemption_id):
        redemption = CoinRedemption.query.filter_by(id=redemption_id).with_for_update().first()
        if not redemption:
            raise NotFound("Redemption not found.")
        return redemption

    @staticmethod
    def approve(redemption_id, approver_id):
        redemption = CoinService._load_redemption(redemption_id)
        if redemption.status not in (RedemptionStatus.PENDING.value, RedemptionStatus.APPROVED.value):
            raise InvalidState(f"Cannot approve redemption with status: {redemption.status}")
        if redemption.status == RedemptionStatus.APPROVED.value:
            return RedemptionResult(redemption=redemption)

        with db.session.begin_nested():
            entry = CoinService._apply(
                redemption.seller_id,
                -_coins(redemption.coin_amount),
                CoinTransactionType.REDEEM,
                CoinSourceType.REDEMPTION,
                source_id=redemption.id,
                description=(
                    f"Coin redemption approved: {redemption.coin_amount} coins to {redemption.cash_amount} cash"
                ),
                details={
                    "redemption_id": redemption.id,
                    "cash_amount": str(redemption.cash_amount),
                    "conversion_rate": str(redemption.conversion_rate),
                },
            )
            affected = CoinRedemption.query.filter_by(
                id=redemption.id, status=RedemptionStatus.PENDING.value
            ).update(
                {"status": RedemptionStatus.APPROVED.value, "approved_at": utcnow(), "approved_by": approver_id},
                synchronize_session=False,
            )
            if affected == 0:
                raise InvalidState("Redemption was already processed by another request.")

        db.session.refresh(redemption)
        result = RedemptionResult(redemption=redemption, transaction=entry)
        NotificationService.run_secondary(
            "seller notification",
            lambda: NotificationService.push(
                redemption.seller_id,
                "Redemption approved",
                f"Your redemption of {redemption.coin_amount} coins was approved.",
                category="coins",
            ),
            result.warnings,
        )
        db.session.commit()
        current_app.logger.info("Redemption %s approved by %s", redemption.id, approver_id)
        return result

    @staticmethod
    def reject(redemption_id, reason):
        reason = (reason or "").strip()
        if not reason:
            raise InvalidInput("Rejection reason is required when rejecting.")
        redemption = CoinService._load_redemption(redemption_id)
        if redemption.status != RedemptionStatus.PENDING.value:
            raise InvalidState(f"Cannot reject redemption with status: {redemption.status}")

        redemption.status = RedemptionStatus.REJECTED.value
        redemption.rejection_reason = reason
        result = RedemptionResult(redemption=redemption)
        NotificationService.run_secondary(
            "seller notification",
            lambda: NotificationService.push(
                redemption.seller_id,
                "Redemption rejected",
                f"Your redemption of {redemption.coin_amount} coins was rejected: {reason}",
                category="coins",
            ),
            result.warnings,
        )
        db.session.commit()
        return result

    @staticmethod
    def mark_paid(redemption_id, notes=None):
        redemption = CoinService._load_redemption(redemption_id)
        if redemption.status != RedemptionStatus.APPROVED.value:
            raise InvalidState(f"Only approved redemptions can be paid (status: {redemption.status}).")
        redemption.status = RedemptionStatus.PAID.value
        redemption.paid_at = utcnow()
        if notes:
            redemption.notes = notes
        db.session.commit()
        return RedemptionResult(redemption=redemption)

    @staticmethod
    def update_redemption(redemption_id, status, actor, rejection_reason=None, notes=None):
        """Single admin entry point for the redemption review screen."""
        status = (status or "").strip().lower()
        if status == RedemptionStatus.APPROVED.value:
            result = CoinService.approve(redemption_id, actor.id)
        elif status == RedemptionStatus.REJECTED.value:
            result = CoinService.reject(redemption_id, rejection_reason)
        elif status == RedemptionStatus.PAID.value:
            return CoinService.mark_paid(redemption_id, notes=notes)
        else:
            raise InvalidInput("Invalid status. Allowed values: approved, rejected, paid.")

        if notes:
            result.redemption.notes = notes
            db.session.commit()
        return result
