import logging
from decimal import Decimal
from types import SimpleNamespace

import pytest
import sentry_sdk
from sqlalchemy.exc import OperationalError

from tripseller.errors import InsufficientBalance, InvalidInput, InvalidState, NotFound, PartialFailure
from tripseller.extensions import db
from tripseller.models import CoinRedemption, CoinTransaction, SellerCoins
from tripseller.services import CoinService, PlatformService


def _pending_redemption(seller, coin_amount):
    # Bypasses the request-time balance check to exercise approval on its own.
    redemption = CoinRedemption(
        seller_id=seller.id,
        coin_amount=Decimal(coin_amount),
        cash_amount=Decimal(coin_amount),
        conversion_rate=Decimal("1"),
        bank_account="HDFC 0001",
        status="pending",
    )
    db.session.add(redemption)
    db.session.commit()
    return redemption


def test_approve_deducts_and_logs_one_transaction(app, admin, seller, fund_wallet):
    fund_wallet(seller, 1000)
    redemption = CoinService.request_redemption(seller.id, 400, "HDFC 0001")

    result = CoinService.approve(redemption.id, admin.id)

    assert result.redemption.status == "approved"
    assert result.redemption.approved_by == admin.id
    entry = result.transaction
    assert entry.amount == Decimal("-400")
    assert entry.balance_before == Decimal("1000")
    assert entry.balance_after == Decimal("600")
    balance = CoinService.balance(seller.id)
    assert balance["redeemable_balance"] == Decimal("600.00")
    assert balance["total_redeemed"] == Decimal("400.00")
    assert CoinService.reconcile(seller.id)


def test_over_redemption_writes_nothing(app, admin, seller, fund_wallet):
    fund_wallet(seller, 1000)
    redemption = _pending_redemption(seller, 1500)

    with pytest.raises(InsufficientBalance):
        CoinService.approve(redemption.id, admin.id)
    db.session.rollback()

    assert CoinService.balance(seller.id)["redeemable_balance"] == Decimal("1000.00")
    assert CoinTransaction.query.filter_by(seller_id=seller.id, transaction_type="redeem").count() == 0
    assert db.session.get(CoinRedemption, redemption.id).status == "pending"


def test_request_redemption_checks_balance_and_pending_requests(app, seller, fund_wallet):
    fund_wallet(seller, 1000)
    CoinService.request_redemption(seller.id, 700, "HDFC 0001")

    with pytest.raises(InsufficientBalance):
        CoinService.request_redemption(seller.id, 400, "HDFC 0001")
    with pytest.raises(InvalidInput):
        CoinService.request_redemption(seller.id, 0, "HDFC 0001")
    with pytest.raises(InvalidInput):
        CoinService.request_redemption(seller.id, 100, "  ")


def test_request_redemption_uses_conversion_rate(app, seller, fund_wallet):
    PlatformService.set_setting("coin_conversion_rate", "0.5")
    fund_wallet(seller, 1000)

    redemption = CoinService.request_redemption(seller.id, 400, "HDFC 0001")

    assert redemption.cash_amount == Decimal("200")
    assert redemption.conversion_rate == Decimal("0.5")


def test_approving_twice_deducts_once(app, admin, seller, fund_wallet):
    fund_wallet(seller, 1000)
    redemption = CoinService.request_redemption(seller.id, 400, "HDFC 0001")
    CoinService.approve(redemption.id, admin.id)

    again = CoinService.approve(redemption.id, admin.id)

    assert again.transaction is None
    assert CoinService.balance(seller.id)["redeemable_balance"] == Decimal("600.00")


def test_reject_requires_reason_and_pending_status(app, admin, seller, fund_wallet):
    fund_wallet(seller, 1000)
    redemption = CoinService.request_redemption(seller.id, 400, "HDFC 0001")

    with pytest.raises(InvalidInput):
        CoinService.reject(redemption.id, "")

    result = CoinService.reject(redemption.id, "Bank details do not match")

    assert result.redemption.status == "rejected"
    assert CoinService.balance(seller.id)["redeemable_balance"] == Decimal("1000.00")
    with pytest.raises(InvalidState):
        CoinService.approve(redemption.id, admin.id)


def test_mark_paid_only_after_approval(app, admin, seller, fund_wallet):
    fund_wallet(seller, 1000)
    redemption = CoinService.request_redemption(seller.id, 400, "HDFC 0001")

    with pytest.raises(InvalidState):
        CoinService.mark_paid(redemption.id)

    CoinService.approve(redemption.id, admin.id)
    result = CoinService.update_redemption(redemption.id, "paid", admin, notes="UTR 998877")

    assert result.redemption.status == "paid"
    assert result.redemption.paid_at is not None
    assert result.redemption.notes == "UTR 998877"


def test_unknown_redemption(app, admin):
    with pytest.raises(NotFound):
        CoinService.approve(12345, admin.id)


def test_manual_adjustments(app, admin, seller, fund_wallet):
    fund_wallet(seller, 100)

    bonus = CoinService.adjust(seller.id, 50, "Referral bonus", admin, reason="Campaign")
    penalty = CoinService.adjust(seller.id, -30, "Duplicate award", admin)

    assert bonus.transaction_type == "bonus"
    assert bonus.details["adjusted_by"] == admin.id
    assert bonus.details["manual_adjustment"] is True
    assert penalty.transaction_type == "adjustment"
    assert CoinService.balance(seller.id)["redeemable_balance"] == Decimal("120.00")
    assert CoinService.reconcile(seller.id)

    with pytest.raises(InsufficientBalance):
        CoinService.adjust(seller.id, -500, "Too much", admin)
    db.session.rollback()
    with pytest.raises(InvalidInput):
        CoinService.adjust(seller.id, 10, "", admin)
    with pytest.raises(NotFound):
        CoinService.adjust(admin.id, 10, "Not a seller", admin)


def test_reconcile_detects_drift(app, seller, fund_wallet):
    fund_wallet(seller, 100)
    wallet = seller.coins
    wallet.redeemable_balance = Decimal("90")
    db.session.commit()

    assert not CoinService.reconcile(seller.id)


def test_cent_amounts_reconcile(app, admin, seller):
    CoinService.award(seller.id, "0.10", description="Referral")
    CoinService.award(seller.id, "0.20", description="Referral")
    db.session.commit()

    entry = CoinService.adjust(seller.id, "-0.10", "Rounding correction", admin)

    assert entry.balance_before == Decimal("0.30")
    assert entry.balance_after == Decimal("0.20")
    assert CoinService.balance(seller.id)["redeemable_balance"] == Decimal("0.20")
    assert CoinService.reconcile(seller.id)

    redemption = CoinService.request_redemption(seller.id, "0.20", "HDFC 0001")
    result = CoinService.approve(redemption.id, admin.id)

    assert result.transaction.balance_after == Decimal("0.00")
    assert CoinService.balance(seller.id)["redeemable_balance"] == Decimal("0.00")
    assert CoinService.reconcile(seller.id)


def _move_balance_behind_our_back(monkeypatch, seller, read_balance, actual_balance):
    SellerCoins.query.filter_by(seller_id=seller.id).update({"redeemable_balance": Decimal(actual_balance)})
    db.session.commit()
    # This request still sees the balance it read before the other writer committed.
    stale = SimpleNamespace(
        redeemable_balance=Decimal(read_balance),
        total_earned=Decimal(read_balance),
        total_redeemed=Decimal("0"),
    )
    monkeypatch.setattr(CoinService, "_wallet", staticmethod(lambda seller_id, create=False: stale))


def test_lost_race_that_drained_balance_is_insufficient(app, admin, seller, fund_wallet, monkeypatch):
    fund_wallet(seller, 1000)
    _move_balance_behind_our_back(monkeypatch, seller, read_balance="1000", actual_balance="300")

    with pytest.raises(InsufficientBalance):
        CoinService.adjust(seller.id, -400, "Payout correction", admin)
    db.session.rollback()

    assert CoinTransaction.query.filter_by(seller_id=seller.id, transaction_type="adjustment").count() == 0
    assert CoinService.balance(seller.id)["redeemable_balance"] == Decimal("300.00")


def test_lost_race_with_enough_balance_asks_for_retry(app, admin, seller, fund_wallet, monkeypatch):
    fund_wallet(seller, 1000)
    _move_balance_behind_our_back(monkeypatch, seller, read_balance="1000", actual_balance="900")

    with pytest.raises(InvalidState):
        CoinService.adjust(seller.id, -400, "Payout correction", admin)
    db.session.rollback()

    assert CoinTransaction.query.filter_by(seller_id=seller.id, transaction_type="adjustment").count() == 0
    assert CoinService.balance(seller.id)["redeemable_balance"] == Decimal("900.00")


def test_failed_balance_write_is_partial_failure(app, admin, seller, fund_wallet, monkeypatch, caplog):
    fund_wallet(seller, 1000)
    reported = []

    def broken_swap(seller_id, balance_before, values):
        raise OperationalError("UPDATE seller_coins", {}, Exception("database is locked"))

    monkeypatch.setattr(CoinService, "_swap_balance", staticmethod(broken_swap))
    monkeypatch.setattr(sentry_sdk, "capture_exception", reported.append)

    with caplog.at_level(logging.ERROR, logger=app.logger.name):
        with pytest.raises(PartialFailure):
            CoinService.adjust(seller.id, -400, "Payout correction", admin)
    db.session.rollback()

    assert len(reported) == 1
    assert isinstance(reported[0], PartialFailure)
    assert any(
        record.levelno == logging.ERROR and "check wallet" in record.getMessage() for record in caplog.records
    )
    assert CoinTransaction.query.filter_by(seller_id=seller.id, transaction_type="adjustment").count() == 0
    assert CoinService.balance(seller.id)["redeemable_balance"] == Decimal("1000.00")
