"""
Synthetic data source for demo mode and tests.

All randomness comes from the pure Park-Miller step, with the generator
state threaded through every draw, so a seed plus an anchor time always
reproduce the same dataset.
"""
import math
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from src.core.entities.fees import FeeRecord, FundingPayment
from src.core.entities.position import Position
from src.core.entities.trade import Trade, TradeDataset
from src.core.interfaces.datasource import IDataSource
from src.core.use_cases.prng import next_random

SYMBOLS = [
    ("SOL/USDC", "spot", 178.0),
    ("SOL-PERP", "perp", 178.0),
    ("WETH/USDC", "spot", 3200.0),
    ("WETH-PERP", "perp", 3200.0),
    ("WBTC/USDC", "spot", 97000.0),
    ("WBTC-PERP", "perp", 97000.0),
    ("TRUMP/USDC", "spot", 18.0),
]

ORDER_TYPES = ["limit", "market", "ioc"]

# (symbol, market, entry price, current price)
OPEN_SYMBOLS = [
    ("SOL-PERP", "perp", 178.0, 181.5),
    ("SOL/USDC", "spot", 176.0, 181.5),
    ("WETH-PERP", "perp", 3150.0, 3220.0),
    ("WBTC/USDC", "spot", 96500.0, 97200.0),
    ("TRUMP/USDC", "spot", 17.5, 18.2),
]

PERP_SYMBOLS = ["SOL-PERP", "WETH-PERP", "WBTC-PERP"]

BASE58 = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


def _pick(items, state: int):
    value, state = next_random(state)
    return items[int(math.floor(value * len(items)))], state


def _random_id(state: int) -> Tuple[str, int]:
    value, state = next_random(state)
    return format(int(math.floor(value * 0xFFFFFFFFFFFFFF)), "014x"), state


def _random_signature(state: int) -> Tuple[str, int]:
    chars = []
    for _ in range(88):
        ch, state = _pick(BASE58, state)
        chars.append(ch)
    return "".join(chars), state


def generate_mock_trades(count: int = 200, seed: int = 42, now: Optional[datetime] = None) -> List[Trade]:
    """
    Trades spread over the 90 days before `now`. Trades whose exit would
    fall after `now` are left open. Newest first.
    """
    now = now or datetime.now(timezone.utc)
    window_start = now - timedelta(days=90)
    window_seconds = (now - window_start).total_seconds()
    state = seed
    trades = []

    for _ in range(count):
        (symbol, market_type, base_price), state = _pick(SYMBOLS, state)
        side_roll, state = next_random(state)
        side = "long" if side_roll > 0.48 else "short"
        order_type, state = _pick(ORDER_TYPES, state)
        is_perp = market_type == "perp"
        leverage = 1
        if is_perp:
            lev_roll, state = next_random(state)
            leverage = int(math.floor(lev_roll * 9)) + 2

        variation, state = next_random(state)
        entry_price = base_price * (1 + (variation - 0.5) * 0.15)

        direction_roll, state = next_random(state)
        direction = 1 if direction_roll > 0.43 else -1
        magnitude, state = next_random(state)
        magnitude *= 0.08
        if side == "long":
            exit_price = entry_price * (1 + direction * magnitude)
        else:
            exit_price = entry_price * (1 - direction * magnitude)

        size_roll, state = next_random(state)
        size_usd = 50 + size_roll * 2000
        size = size_usd / entry_price

        time_roll, state = next_random(state)
        entry_time = window_start + timedelta(seconds=time_roll * window_seconds)
        duration_roll, state = next_random(state)
        exit_time = entry_time + timedelta(minutes=15) + timedelta(seconds=duration_roll * 7 * 24 * 3600)

        if side == "long":
            raw_pnl = (exit_price - entry_price) * size * leverage
        else:
            raw_pnl = (entry_price - exit_price) * size * leverage

        fees = size_usd * leverage * 0.0005
        maker_rebate = fees * 0.125 if order_type == "limit" else 0.0
        funding_paid = 0.0
        funding_received = 0.0
        if is_perp:
            paid_roll, state = next_random(state)
            received_roll, state = next_random(state)
            funding_paid = size_usd * leverage * 0.0001 * (paid_roll * 3)
            funding_received = size_usd * leverage * 0.00005 * (received_roll * 2)

        pnl = raw_pnl - fees + maker_rebate - funding_paid + funding_received
        is_closed = exit_time < now

        trade_id, state = _random_id(state)
        tx_sig, state = _random_signature(state)
        exit_sig = None
        if is_closed:
            exit_sig, state = _random_signature(state)

        trades.append(Trade(
            id=trade_id,
            symbol=symbol,
            market_type=market_type,
            side=side,
            order_type=order_type,
            status="closed" if is_closed else "open",
            entry_price=entry_price,
            exit_price=exit_price if is_closed else None,
            size=size,
            leverage=leverage,
            entry_time=entry_time,
            exit_time=exit_time if is_closed else None,
            pnl=pnl if is_closed else 0.0,
            pnl_percent=(pnl / size_usd) * 100 if is_closed else 0.0,
            fees=fees,
            maker_rebate=maker_rebate,
            funding_paid=funding_paid,
            funding_received=funding_received,
            tx_signature=tx_sig,
            exit_tx_signature=exit_sig,
        ))

    trades.sort(key=lambda t: t.entry_time, reverse=True)
    return trades


def generate_mock_positions(seed: int = 99, now: Optional[datetime] = None) -> List[Position]:
    now = now or datetime.now(timezone.utc)
    state = seed
    positions = []

    for symbol, market_type, entry_price, current_price in OPEN_SYMBOLS:
        side_roll, state = next_random(state)
        side = "long" if side_roll > 0.4 else "short"
        is_perp = market_type == "perp"
        leverage = 1
        if is_perp:
            lev_roll, state = next_random(state)
            leverage = int(math.floor(lev_roll * 5)) + 2
        size_roll, state = next_random(state)
        size_usd = 200 + size_roll * 3000
        size = size_usd / entry_price

        move = current_price - entry_price if side == "long" else entry_price - current_price
        unrealized = move * size * leverage

        liquidation = None
        if is_perp:
            buffer = 0.9 / leverage
            liquidation = entry_price * (1 - buffer) if side == "long" else entry_price * (1 + buffer)

        funding_accrued = 0.0
        if is_perp:
            funding_roll, state = next_random(state)
            funding_accrued = (funding_roll - 0.3) * 20
        position_id, state = _random_id(state)
        age_roll, state = next_random(state)

        positions.append(Position(
            id=position_id,
            symbol=symbol,
            market_type=market_type,
            side=side,
            entry_price=entry_price,
            current_price=current_price,
            size=size,
            leverage=leverage,
            margin=size_usd / leverage if is_perp else size_usd,
            unrealized_pnl=unrealized,
            unrealized_pnl_percent=(unrealized / size_usd) * 100,
            funding_accrued=funding_accrued,
            open_time=now - timedelta(seconds=age_roll * 7 * 24 * 3600),
            liquidation_price=liquidation,
        ))

    return positions


def generate_mock_funding_payments(count: int = 50, seed: int = 77, now: Optional[datetime] = None) -> List[FundingPayment]:
    now = now or datetime.now(timezone.utc)
    state = seed
    payments = []

    for _ in range(count):
        symbol, state = _pick(PERP_SYMBOLS, state)
        rate_roll, state = next_random(state)
        rate = (rate_roll - 0.5) * 0.001
        size_roll, state = next_random(state)
        position_size = 500 + size_roll * 5000
        payment_id, state = _random_id(state)
        age_roll, state = next_random(state)

        payments.append(FundingPayment(
            id=payment_id,
            symbol=symbol,
            timestamp=now - timedelta(seconds=age_roll * 30 * 24 * 3600),
            amount=rate * position_size,
            rate=rate,
            position_size=position_size,
        ))

    payments.sort(key=lambda p: p.timestamp, reverse=True)
    return payments


def generate_mock_fee_records(trades: List[Trade]) -> List[FeeRecord]:
    records = []
    for trade in trades:
        if trade.fees > 0:
            records.append(FeeRecord(
                id=f"fee-{trade.id}",
                timestamp=trade.entry_time,
                symbol=trade.symbol,
                type="taker",
                amount=-trade.fees,
                tx_signature=trade.tx_signature,
            ))
        if trade.maker_rebate > 0:
            records.append(FeeRecord(
                id=f"rebate-{trade.id}",
                timestamp=trade.entry_time,
                symbol=trade.symbol,
                type="maker_rebate",
                amount=trade.maker_rebate,
                tx_signature=trade.tx_signature,
            ))
        if trade.funding_paid > 0:
            records.append(FeeRecord(
                id=f"funding-{trade.id}",
                timestamp=trade.entry_time,
                symbol=trade.symbol,
                type="funding",
                amount=-(trade.funding_paid - trade.funding_received),
                tx_signature=trade.tx_signature,
            ))

    records.sort(key=lambda r: r.timestamp, reverse=True)
    return records


class LocalMockDataSource(IDataSource):
    """
    Serves the same synthetic dataset for any wallet.
    """

    def __init__(self, now: Optional[datetime] = None, trade_count: int = 200):
        self.now = now or datetime.now(timezone.utc)
        self.trade_count = trade_count

    async def get_dataset(self, wallet: str) -> TradeDataset:
        trades = generate_mock_trades(self.trade_count, now=self.now)
        return TradeDataset(
            trades=trades,
            fee_records=generate_mock_fee_records(trades),
            funding_payments=generate_mock_funding_payments(now=self.now),
        )

    async def get_positions(self, wallet: str) -> List[Position]:
        return generate_mock_positions(now=self.now)
