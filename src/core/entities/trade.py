from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.core.entities.fees import FeeRecord, FundingPayment

MarketType = Literal["spot", "perp"]
OrderSide = Literal["long", "short"]
OrderType = Literal["limit", "market", "ioc"]
TradeStatus = Literal["open", "closed"]


class Trade(BaseModel):
    """
    Standardised Trade entity used throughout the analytics engine.
    Closed trades carry exit data and realized pnl; open trades carry
    pnl=0 and no exit data unless the caller marks them to market.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    symbol: str
    market_type: MarketType
    side: OrderSide
    order_type: OrderType
    status: TradeStatus

    entry_price: float = Field(ge=0)
    exit_price: Optional[float] = Field(default=None, ge=0)
    size: float = Field(ge=0)
    leverage: int = Field(default=1, ge=1)

    entry_time: datetime
    exit_time: Optional[datetime] = None

    pnl: float = 0.0
    pnl_percent: float = 0.0
    fees: float = Field(default=0.0, ge=0)
    maker_rebate: float = Field(default=0.0, ge=0)
    funding_paid: float = Field(default=0.0, ge=0)
    funding_received: float = Field(default=0.0, ge=0)

    tx_signature: str = ""
    exit_tx_signature: Optional[str] = None

    @property
    def notional(self) -> float:
        return self.size * self.entry_price * self.leverage

    @property
    def is_win(self) -> bool:
        # Zero pnl counts as a loss everywhere
        return self.pnl > 0


class TradeDataset(BaseModel):
    """
    Everything the ingestion side hands over to the analytics engine.
    """
    trades: List[Trade] = []
    fee_records: List[FeeRecord] = []
    funding_payments: List[FundingPayment] = []

