"""
Number Model
Status: available | sold
A number moves from available to sold once and never back.
"""

import uuid

from usanumbers.extensions import db
from usanumbers.models.common import isoformat, utcnow
from usanumbers.money import as_float

STATUS_AVAILABLE = "available"
STATUS_SOLD = "sold"
STATUSES = (STATUS_AVAILABLE, STATUS_SOLD)

DEFAULT_TYPE = "SMS & Call"


class Number(db.Model):
    __tablename__ = "numbers"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    phone_number = db.Column(db.String(64), unique=True, nullable=False)
    original_number = db.Column(db.String(64))
    api_url = db.Column(db.Text)
    price_cents = db.Column(db.BigInteger, nullable=False)
    type = db.Column(db.String(64), nullable=False, default=DEFAULT_TYPE)
    status = db.Column(
        db.Enum(*STATUSES, name="number_status"),
        nullable=False,
        default=STATUS_AVAILABLE,
        index=True,
    )
    sold_to = db.Column(db.String(128))
    sold_to_email = db.Column(db.String(255))
    sold_at = db.Column(db.DateTime(timezone=True))
    added_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    added_by = db.Column(db.String(128))
    added_by_email = db.Column(db.String(255))
    updated_at = db.Column(db.DateTime(timezone=True))
    updated_by = db.Column(db.String(255))

    @property
    def is_available(self):
        return self.status == STATUS_AVAILABLE

    def to_dict(self):
        return {
            "id":           self.id,
            "phoneNumber":  self.phone_number,
            "apiUrl":       self.api_url,
            "price":        as_float(self.price_cents),
            "type":         self.type,
            "status":       self.status,
            "soldTo":       self.sold_to,
            "soldToEmail":  self.sold_to_email,
            "soldAt":       isoformat(self.sold_at),
            "addedAt":      isoformat(self.added_at),
            "addedBy":      self.added_by,
        }
