from typing import List

from pydantic import BaseModel

from src.core.entities.analytics import (
    AnalyticsSummary,
    DailyPnl,
    DrawdownPoint,
    FeeBreakdownItem,
    FundingSummary,
    HourlyPerformance,
    MonthlyReturn,
    OrderTypePerformance,
    PnlDistribution,
    SessionPerformance,
    SymbolPerformance,
)
from src.core.entities.pattern import TradePattern
from src.core.entities.risk import RiskScore


class DashboardResponse(BaseModel):
    """
    Every derived structure for one filtered trade set.
    """
    trade_count: int
    symbols: List[str]
    summary: AnalyticsSummary
    daily_pnl: List[DailyPnl]
    drawdown: List[DrawdownPoint]
    sessions: List[SessionPerformance]
    hourly: List[HourlyPerformance]
    order_types: List[OrderTypePerformance]
    symbol_performance: List[SymbolPerformance]
    monthly_returns: List[MonthlyReturn]
    risk_score: RiskScore
    patterns: List[TradePattern]
    fee_breakdown: List[FeeBreakdownItem]
    funding: FundingSummary
    distribution: PnlDistribution
