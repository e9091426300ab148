from typing import List

from src.core.entities.analytics import PricePoint
from src.core.entities.trade import Trade
from src.core.use_cases.prng import next_random, seed_from_text

REPLAY_STEPS = 30


def generate_mini_price_data(trade: Trade) -> List[PricePoint]:
    """
    Synthetic entry-to-exit price path for the trade replay chart.
    Seeded from the trade id, so a trade always replays the same path.
    """
    entry = trade.entry_price
    exit_price = trade.exit_price or entry
    trend = (exit_price - entry) / REPLAY_STEPS
    volatility = abs(exit_price - entry) * 0.3

    state = seed_from_text(trade.id)
    price = entry
    points = []
    for step in range(REPLAY_STEPS + 1):
        points.append(PricePoint(time=step, price=price))
        value, state = next_random(state)
        price = price + trend + (value - 0.5) * volatility

    points[REPLAY_STEPS] = PricePoint(time=REPLAY_STEPS, price=exit_price)
    return points
