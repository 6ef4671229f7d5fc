"""
Transaction Model
Append-only audit record of credit and ownership changes.
Type: single_purchase | bulk_purchase | credit_added
"""

import uuid

from sqlalchemy import event

from usanumbers.extensions import db
from usanumbers.models.common import isoformat, utcnow
from usanumbers.money import as_float

SINGLE_PURCHASE = "single_purchase"
BULK_PURCHASE = "bulk_purchase"
CREDIT_ADDED = "credit_added"
PURCHASE_TYPES = (SINGLE_PURCHASE, BULK_PURCHASE)


class Transaction(db.Model):
    __tablename__ = "transactions"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Plain columns so history survives user deletion
    user_id = db.Column(db.String(128), nullable=False, index=True)
    user_email = db.Column(db.String(255))
    type = db.Column(
        db.Enum(SINGLE_PURCHASE, BULK_PURCHASE, CREDIT_ADDED, name="transaction_type"),
        nullable=False,
    )
    amount_cents = db.Column(db.BigInteger, nullable=False)
    payload = db.Column(db.JSON, nullable=False, default=dict)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    status = db.Column(db.String(20), nullable=False, default="completed")

    def to_dict(self):
        return {
            "id":        self.id,
            "userId":    self.user_id,
            "userEmail": self.user_email,
            "type":      self.type,
            "amount":    as_float(self.amount_cents),
            "payload":   self.payload,
            "timestamp": isoformat(self.timestamp),
            "status":    self.status,
        }


@event.listens_for(Transaction, "before_update")
def _refuse_update(mapper, connection, target):
    raise RuntimeError(f"Transaction {target.id} is append-only")
