import logging
from typing import List, Optional

from src.core.entities.dashboard import DashboardResponse
from src.core.entities.filters import FilterState
from src.core.entities.position import PortfolioSnapshot
from src.core.entities.trade import Trade, TradeDataset
from src.core.interfaces.datasource import IDataSource
from src.core.use_cases.distribution import compute_pnl_distribution
from src.core.use_cases.fee_analytics import compute_fee_breakdown, compute_funding_summary
from src.core.use_cases.pattern_detector import detect_patterns
from src.core.use_cases.portfolio import compute_portfolio_snapshot
from src.core.use_cases.risk_scorer import compute_risk_score
from src.core.use_cases.summary_aggregator import compute_summary
from src.core.use_cases.time_buckets import (
    compute_daily_pnl,
    compute_drawdown,
    compute_hourly_performance,
    compute_monthly_returns,
    compute_order_type_performance,
    compute_session_performance,
    compute_symbol_performance,
)
from src.core.use_cases.trade_filter import filter_trades, unique_symbols

logger = logging.getLogger(__name__)


# --- Business Logic Services ---

class AnalyticsService:
    """
    Fetches a wallet's dataset from the data source and runs the
    analytics engine over it. Nothing is cached here; every call
    recomputes from the dataset.
    """

    def __init__(self, datasource: IDataSource):
        self.db = datasource

    async def get_dataset(self, wallet: str) -> TradeDataset:
        dataset = await self.db.get_dataset(wallet)
        if not dataset.trades:
            logger.warning(f"No trades found for {wallet}")
        return dataset

    async def get_filtered_trades(self, wallet: str, filters: FilterState) -> List[Trade]:
        dataset = await self.get_dataset(wallet)
        return filter_trades(dataset.trades, filters)

    async def find_trade(self, wallet: str, trade_id: str) -> Optional[Trade]:
        dataset = await self.get_dataset(wallet)
        for trade in dataset.trades:
            if trade.id == trade_id:
                return trade
        return None

    async def get_dashboard(self, wallet: str, filters: FilterState) -> DashboardResponse:
        dataset = await self.get_dataset(wallet)
        return self.build_dashboard(dataset, filters)

    async def get_portfolio(self, wallet: str) -> PortfolioSnapshot:
        positions = await self.db.get_positions(wallet)
        dataset = await self.get_dataset(wallet)
        return compute_portfolio_snapshot(positions, dataset.funding_payments)

    @staticmethod
    def build_dashboard(dataset: TradeDataset, filters: FilterState) -> DashboardResponse:
        trades = filter_trades(dataset.trades, filters)

        # 1. Summary first; the risk score depends on it
        summary = compute_summary(trades)

        # 2. Time-bucketed reporters
        daily = compute_daily_pnl(trades)

        return DashboardResponse(
            trade_count=len(trades),
            symbols=unique_symbols(dataset.trades),
            summary=summary,
            daily_pnl=daily,
            drawdown=compute_drawdown(daily),
            sessions=compute_session_performance(trades),
            hourly=compute_hourly_performance(trades),
            order_types=compute_order_type_performance(trades),
            symbol_performance=compute_symbol_performance(trades),
            monthly_returns=compute_monthly_returns(trades),
            # 3. Scoring and behavioural patterns
            risk_score=compute_risk_score(trades, summary),
            patterns=detect_patterns(trades),
            # 4. Cash flows are not trade-filtered
            fee_breakdown=compute_fee_breakdown(dataset.fee_records),
            funding=compute_funding_summary(dataset.funding_payments),
            distribution=compute_pnl_distribution(trades),
        )
