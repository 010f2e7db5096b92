# zlot/schemas/payment.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class PaymentOut(BaseModel):
    id: str
    user_id: str
    session_id: Optional[str]
    amount: float
    status: str
    order_id: Optional[str]
    payment_id: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
