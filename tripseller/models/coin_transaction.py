from tripseller.extensions import db
from tripseller.models.base import Money, PKType, TimestampMixin


class CoinTransaction(TimestampMixin, db.Model):
    """Append-only audit log of every coin balance change."""

    __tablename__ = "coin_transactions"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    seller_id = db.Column(PKType, db.ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    transaction_type = db.Column(db.String(24), nullable=False, index=True)
    source_type = db.Column(db.String(24), nullable=False)
    source_id = db.Column(PKType, nullable=True)
    amount = db.Column(Money, nullable=False)
    balance_before = db.Column(Money, nullable=False)
    balance_after = db.Column(Money, nullable=False)
    description = db.Column(db.Text, nullable=True)
    details = db.Column(db.JSON, nullable=True)

    __table_args__ = (
        db.Index("ix_coin_transactions_seller_created", "seller_id", "created_at"),
        db.CheckConstraint("amount != 0", name="ck_coin_transaction_amount_non_zero"),
        # Compared in whole cents: SQLite keeps Numeric as REAL, where 0.10 + 0.20 != 0.30.
        db.CheckConstraint(
            "round(balance_after * 100) = round(balance_before * 100) + round(amount * 100)",
            name="ck_coin_transaction_reconciles",
        ),
        db.CheckConstraint("balance_after >= 0", name="ck_coin_transaction_balance_non_negative"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "transaction_type": self.transaction_type,
            "source_type": self.source_type,
            "source_id": self.source_id,
            "amount": str(self.amount),
            "balance_before": str(self.balance_before),
            "balance_after": str(self.balance_after),
            "description": self.description,
            "created_at": self.created_at.isoformat(),
        }
