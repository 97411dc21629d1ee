from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class OrderSequenceCounter(db.Model):
    """
    Persisted order-number counter.

    One row per deployment, keyed by Config.ORDER_COUNTER_ID. Created lazily
    with value 0, incremented once per committed order, never decremented.
    """
    __tablename__ = "order_sequence_counters"

    id = db.Column(db.String(32), primary_key=True)
    value = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "value": self.value,
            "updated_at": to_utc_z(self.updated_at),
        }
