from typing import Dict, List

from src.core.entities.analytics import (
    CumulativeFeePoint,
    DailyFunding,
    FeeBreakdownItem,
    FundingSummary,
)
from src.core.entities.fees import FeeRecord, FundingPayment
from src.core.use_cases.calendar import day_key


def compute_fee_breakdown(fee_records: List[FeeRecord]) -> List[FeeBreakdownItem]:
    """
    Taker fees and funding costs are reported as magnitudes; rebates keep
    their sign.
    """
    taker = sum(abs(r.amount) for r in fee_records if r.type == "taker")
    rebates = sum(r.amount for r in fee_records if r.type == "maker_rebate")
    funding = sum(abs(r.amount) for r in fee_records if r.type == "funding")

    return [
        FeeBreakdownItem(name="Taker Fees", value=taker, color="#ef4444"),
        FeeBreakdownItem(name="Maker Rebates", value=rebates, color="#22c55e"),
        FeeBreakdownItem(name="Funding Costs", value=funding, color="#f59e0b"),
    ]


def _daily_totals(amounts) -> Dict[str, float]:
    daily: Dict[str, float] = {}
    for ts, amount in amounts:
        key = day_key(ts)
        daily[key] = daily.get(key, 0.0) + amount
    return daily


def compute_cumulative_fees(fee_records: List[FeeRecord]) -> List[CumulativeFeePoint]:
    daily = _daily_totals((r.timestamp, r.amount) for r in fee_records)

    points = []
    cumulative = 0.0
    for day in sorted(daily):
        cumulative += daily[day]
        points.append(CumulativeFeePoint(date=day, cumulative=cumulative))
    return points


def compute_funding_summary(funding_payments: List[FundingPayment]) -> FundingSummary:
    received = sum(f.amount for f in funding_payments if f.amount > 0)
    paid = sum(abs(f.amount) for f in funding_payments if f.amount < 0)
    daily = _daily_totals((f.timestamp, f.amount) for f in funding_payments)

    series = []
    cumulative = 0.0
    for day in sorted(daily):
        cumulative += daily[day]
        series.append(DailyFunding(date=day, amount=daily[day], cumulative=cumulative))

    return FundingSummary(
        total_received=received,
        total_paid=paid,
        net_funding=received - paid,
        daily=series,
    )
