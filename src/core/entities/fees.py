"""
Fee, rebate and funding events for TradeTrace analytics.
"""
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

FeeType = Literal["taker", "maker_rebate", "funding"]


class FeeRecord(BaseModel):
    """
    A single fee, rebate or funding-cost event.
    Taker fees may arrive signed either way; consumers take abs().
    """
    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime
    symbol: str
    type: FeeType
    amount: float
    tx_signature: str = ""


class FundingPayment(BaseModel):
    """
    One perpetual funding settlement.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "fund-0",
                "symbol": "SOL-PERP",
                "timestamp": "2025-01-15T08:00:00Z",
                "amount": -0.42,
                "rate": -0.0001,
                "position_size": 4200.0
            }
        },
    )

    id: str
    symbol: str
    timestamp: datetime
    amount: float  # Positive = received, Negative = paid
    rate: float = 0.0
    position_size: float = 0.0
