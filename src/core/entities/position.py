from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from src.core.entities.trade import MarketType, OrderSide


class Position(BaseModel):
    """
    Open position snapshot as reported by the venue.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    symbol: str
    market_type: MarketType
    side: OrderSide
    entry_price: float
    current_price: float
    size: float
    leverage: int = 1
    margin: float = 0.0
    unrealized_pnl: float = 0.0
    unrealized_pnl_percent: float = 0.0
    funding_accrued: float = 0.0
    open_time: datetime
    liquidation_price: Optional[float] = None  # None for spot


class AllocationEntry(BaseModel):
    symbol: str
    value: float
    percentage: float


class PortfolioSnapshot(BaseModel):
    """
    Aggregated view over open positions and funding cash flows.
    """
    total_value: float
    total_unrealized_pnl: float
    total_margin: float
    total_exposure: float
    margin_utilization: float  # margin / exposure * 100
    net_funding: float
    allocation: List[AllocationEntry]
    positions: List[Position]
