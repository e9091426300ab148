from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from src.core.entities.trade import MarketType, OrderSide


class DateRange(BaseModel):
    start: datetime
    end: datetime


class FilterState(BaseModel):
    """
    Dashboard filter criteria. Any field left as None matches everything.
    """
    symbol: Optional[str] = None
    side: Optional[OrderSide] = None
    market_type: Optional[MarketType] = None
    date_range: Optional[DateRange] = None
