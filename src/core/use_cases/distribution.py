import math
from typing import List

from src.core.entities.analytics import DistributionBin, PnlDistribution
from src.core.entities.trade import Trade
from src.core.use_cases.summary_aggregator import closed_trades

MIN_TRADES = 5
MIN_BINS = 8
MAX_BINS = 20


def compute_pnl_distribution(trades: List[Trade]) -> PnlDistribution:
    """
    Equal-width histogram of closed-trade pnl with mean and median.
    Empty when there are too few trades or every pnl is identical.
    """
    pnls = [t.pnl for t in closed_trades(trades)]
    if len(pnls) < MIN_TRADES:
        return PnlDistribution()

    low, high = min(pnls), max(pnls)
    span = high - low
    if span == 0:
        return PnlDistribution()

    bin_count = min(MAX_BINS, max(MIN_BINS, math.ceil(math.sqrt(len(pnls)))))
    width = span / bin_count

    counts = [0] * bin_count
    for pnl in pnls:
        idx = int(math.floor((pnl - low) / width))
        counts[min(max(idx, 0), bin_count - 1)] += 1

    bins = []
    for i, count in enumerate(counts):
        start = low + i * width
        end = start + width
        bins.append(DistributionBin(start=start, end=end, midpoint=(start + end) / 2, count=count))

    ordered = sorted(pnls)
    return PnlDistribution(
        bins=bins,
        mean=sum(pnls) / len(pnls),
        median=ordered[len(ordered) // 2],
    )
