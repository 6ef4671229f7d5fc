from usanumbers.extensions import db
from usanumbers.models.common import isoformat, utcnow
from usanumbers.money import as_float, format_amount

PURCHASE_SINGLE = "single"
PURCHASE_BULK = "bulk"


class PurchasedNumber(db.Model):
    """A buyer's snapshot of a number at the moment it was purchased."""

    __tablename__ = "purchased_numbers"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(
        db.String(128),
        db.ForeignKey("users.uid", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    phone_number = db.Column(db.String(64), nullable=False)
    api_url = db.Column(db.Text)
    type = db.Column(db.String(64))
    # No foreign key: the number record may be hard-deleted later
    original_id = db.Column(db.String(36))
    purchased_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    purchase_type = db.Column(
        db.Enum(PURCHASE_SINGLE, PURCHASE_BULK, name="purchase_type"), nullable=False
    )
    price_cents = db.Column(db.BigInteger, nullable=False)

    user = db.relationship("User", back_populates="purchases")

    def snapshot(self):
        """Exact form kept in the transaction ledger."""
        return {
            "phoneNumber": self.phone_number,
            "apiUrl": self.api_url,
            "type": self.type,
            "originalId": self.original_id,
            "purchasedAt": isoformat(self.purchased_at),
            "purchaseType": self.purchase_type,
            "price": format_amount(self.price_cents),
        }

    def to_dict(self):
        data = self.snapshot()
        data["price"] = as_float(self.price_cents)
        return data
