from typing import List

from src.core.entities.fees import FundingPayment
from src.core.entities.position import AllocationEntry, PortfolioSnapshot, Position


def compute_portfolio_snapshot(
    positions: List[Position],
    funding_payments: List[FundingPayment],
) -> PortfolioSnapshot:
    values = [abs(p.size * p.current_price) for p in positions]
    total_value = sum(values)

    perps = [p for p in positions if p.market_type == "perp"]
    total_margin = sum(p.margin for p in perps)
    total_exposure = sum(abs(p.size * p.current_price * p.leverage) for p in perps)

    allocation = [
        AllocationEntry(
            symbol=p.symbol,
            value=value,
            percentage=(value / total_value) * 100 if total_value > 0 else 0.0,
        )
        for p, value in zip(positions, values)
    ]

    return PortfolioSnapshot(
        total_value=total_value,
        total_unrealized_pnl=sum(p.unrealized_pnl for p in positions),
        total_margin=total_margin,
        total_exposure=total_exposure,
        margin_utilization=(total_margin / total_exposure) * 100 if total_exposure > 0 else 0.0,
        net_funding=sum(f.amount for f in funding_payments),
        allocation=allocation,
        positions=positions,
    )
