"""
Derived analytics structures returned by the engine.

All of these are read-only snapshots recomputed from a trade list.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict

from src.core.entities.trade import OrderType

Session = Literal["Asian", "European", "US"]


class AnalyticsSummary(BaseModel):
    # profit_factor is +inf when there are wins but no losses
    model_config = ConfigDict(ser_json_inf_nan="strings")

    total_pnl: float = 0.0
    unrealized_pnl: float = 0.0
    total_volume: float = 0.0
    total_fees: float = 0.0
    total_maker_rebates: float = 0.0
    net_fees: float = 0.0
    win_rate: float = 0.0
    total_trades: int = 0
    win_count: int = 0
    loss_count: int = 0
    avg_trade_duration: float = 0.0  # minutes
    long_count: int = 0
    short_count: int = 0
    long_pnl: float = 0.0
    short_pnl: float = 0.0
    largest_win: float = 0.0
    largest_loss: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0  # negative
    max_drawdown: float = 0.0
    max_drawdown_percent: float = 0.0
    profit_factor: float = 0.0
    expectancy: float = 0.0
    current_streak: int = 0
    best_streak: int = 0
    worst_streak: int = 0
    sharpe_ratio: float = 0.0
    sortino_ratio: float = 0.0


class DailyPnl(BaseModel):
    date: str  # YYYY-MM-DD
    pnl: float
    cumulative_pnl: float
    trade_count: int
    volume: float
    fees: float


class DrawdownPoint(BaseModel):
    date: str
    drawdown: float
    drawdown_percent: float


class SessionPerformance(BaseModel):
    session: Session
    pnl: float
    trade_count: int
    win_rate: float
    avg_pnl: float


class HourlyPerformance(BaseModel):
    hour: int
    pnl: float
    trade_count: int
    win_rate: float


class OrderTypePerformance(BaseModel):
    order_type: OrderType
    pnl: float
    trade_count: int
    win_rate: float
    avg_pnl: float


class SymbolPerformance(BaseModel):
    symbol: str
    pnl: float
    trade_count: int
    win_rate: float
    avg_trade_size: float
    best_trade: float
    worst_trade: float
    pnl_trend: List[float]  # cumulative pnl points for sparklines


class MonthlyReturn(BaseModel):
    month: str  # YYYY-MM
    label: str  # "Jan 2025"
    pnl: float
    trade_count: int
    win_rate: float
    best_day: float
    worst_day: float


class FeeBreakdownItem(BaseModel):
    name: str
    value: float
    color: str


class CumulativeFeePoint(BaseModel):
    date: str
    cumulative: float


class DailyFunding(BaseModel):
    date: str
    amount: float
    cumulative: float


class FundingSummary(BaseModel):
    total_received: float
    total_paid: float
    net_funding: float
    daily: List[DailyFunding]


class DistributionBin(BaseModel):
    start: float
    end: float
    midpoint: float
    count: int


class PnlDistribution(BaseModel):
    bins: List[DistributionBin] = []
    mean: Optional[float] = None
    median: Optional[float] = None


class PricePoint(BaseModel):
    time: int
    price: float
