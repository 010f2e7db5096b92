# zlot/models/payment.py
"""
Payments: one row per successful pay step, immutable afterwards.
order_id / payment_id are synthesized refs (stub capture, no gateway).
"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, Float, ForeignKey
from zlot.database import Base
from zlot.models._ids import new_uuid

SUCCESS_PAYMENT_STATUSES = {"SUCCESS", "PAID", "CAPTURED"}


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=new_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    session_id = Column(String(36), ForeignKey("parking_sessions.id"))
    amount = Column(Float, default=0, nullable=False)
    status = Column(String(30), default="SUCCESS", nullable=False)
    order_id = Column(String(100))
    payment_id = Column(String(100))
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<Payment {self.id} session={self.session_id} amount={self.amount}>"
