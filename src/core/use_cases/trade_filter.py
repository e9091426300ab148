from typing import List

from src.core.entities.filters import FilterState
from src.core.entities.trade import Trade
from src.core.use_cases.calendar import to_utc


def filter_trades(trades: List[Trade], filters: FilterState) -> List[Trade]:
    """
    Returns the trades matching every criterion that is set, in input order.
    The date range is inclusive on both ends and applies to entry_time.
    """
    start = to_utc(filters.date_range.start) if filters.date_range else None
    end = to_utc(filters.date_range.end) if filters.date_range else None

    result = []
    for t in trades:
        if filters.symbol and t.symbol != filters.symbol:
            continue
        if filters.side and t.side != filters.side:
            continue
        if filters.market_type and t.market_type != filters.market_type:
            continue
        if start is not None:
            entry = to_utc(t.entry_time)
            if entry < start or entry > end:
                continue
        result.append(t)
    return result


def unique_symbols(trades: List[Trade]) -> List[str]:
    return sorted({t.symbol for t in trades})
