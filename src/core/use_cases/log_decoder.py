"""
Deriverse program-log decoding.

Transaction logs carry "Program data: <base64>" lines. Each payload starts
with a one-byte tag selecting one of a closed set of event layouts; every
payload decodes to exactly one event variant or to None.

Fees are paired with fills explicitly: inside one transaction a fill takes
the nearest preceding fees event that no other fill has consumed. Fees
never carry over into another transaction.
"""
import base64
import binascii
import logging
import struct
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import IntEnum
from typing import Dict, List, Optional, Tuple, Union

from src.core.entities.fees import FeeRecord, FundingPayment
from src.core.entities.trade import MarketType, Trade, TradeDataset

logger = logging.getLogger(__name__)

PROGRAM_DATA_PREFIX = "Program data: "

# Fixed-point scale of every on-chain amount
DEC = 1_000_000_000

INSTRUMENT_NAMES: Dict[int, str] = {
    0: "SOL/USDC",
    1: "BTC/USDC",
    2: "ETH/USDC",
    3: "BONK/USDC",
    4: "JTO/USDC",
    5: "TRUMP/USDC",
}


class LogTag(IntEnum):
    SPOT_FILL = 11
    SPOT_FEES = 12
    PERP_FILL = 19
    PERP_FEES = 20
    PERP_FUNDING = 24


# tag, side, instr_id, order_id, qty, price, crncy
FILL_LAYOUT = struct.Struct("<BBxxIqqqq")
# tag, instr_id, fees, ref_payment
FEES_LAYOUT = struct.Struct("<BxxxIqq")
# tag, instr_id, funding, unix time (s)
FUNDING_LAYOUT = struct.Struct("<BxxxIqq")


@dataclass(frozen=True)
class FillEvent:
    market_type: MarketType
    side: int  # 0 = bid/long, anything else = ask/short
    instr_id: int
    order_id: int
    qty: int
    price: int
    crncy: int


@dataclass(frozen=True)
class FeesEvent:
    market_type: MarketType
    instr_id: int
    fees: int
    ref_payment: int


@dataclass(frozen=True)
class FundingEvent:
    instr_id: int
    funding: int
    time: int


LogEvent = Union[FillEvent, FeesEvent, FundingEvent]


def resolve_symbol(instr_id: int, is_perp: bool) -> str:
    base = INSTRUMENT_NAMES.get(instr_id, f"INSTR-{instr_id}")
    return base.replace("/USDC", "-PERP") if is_perp else base


def decode_log(data: bytes) -> Optional[LogEvent]:
    """
    Decodes one program-data payload. Empty, truncated and unknown-tag
    payloads yield None (place/cancel events and the like are ignored).
    """
    if not data:
        return None
    try:
        tag = LogTag(data[0])
    except ValueError:
        return None

    try:
        if tag in (LogTag.SPOT_FILL, LogTag.PERP_FILL):
            _, side, instr_id, order_id, qty, price, crncy = FILL_LAYOUT.unpack_from(data)
            market: MarketType = "spot" if tag == LogTag.SPOT_FILL else "perp"
            return FillEvent(market, side, instr_id, order_id, qty, price, crncy)
        if tag in (LogTag.SPOT_FEES, LogTag.PERP_FEES):
            _, instr_id, fees, ref_payment = FEES_LAYOUT.unpack_from(data)
            market = "spot" if tag == LogTag.SPOT_FEES else "perp"
            return FeesEvent(market, instr_id, fees, ref_payment)
        _, instr_id, funding, time = FUNDING_LAYOUT.unpack_from(data)
        return FundingEvent(instr_id, funding, time)
    except struct.error:
        return None


def invokes_program(log_messages: List[str], program_id: str) -> bool:
    return any(program_id in line and "invoke" in line for line in log_messages)


def extract_program_data(log_messages: List[str]) -> List[bytes]:
    payloads = []
    for line in log_messages:
        if not line.startswith(PROGRAM_DATA_PREFIX):
            continue
        try:
            payloads.append(base64.b64decode(line[len(PROGRAM_DATA_PREFIX):], validate=True))
        except (binascii.Error, ValueError):
            continue
    return payloads


def decode_events(log_messages: List[str]) -> List[LogEvent]:
    events = []
    for payload in extract_program_data(log_messages):
        event = decode_log(payload)
        if event is not None:
            events.append(event)
    return events


def pair_fills_with_fees(
    events: List[LogEvent],
) -> Tuple[List[Tuple[FillEvent, Optional[FeesEvent]]], List[FeesEvent]]:
    """
    Pairs every fill with the nearest preceding unconsumed fees event of
    the same transaction. Returns (pairs, orphaned fees). A fees event is
    orphaned when another fees event supersedes it before any fill, or
    when no fill follows it at all.
    """
    pairs: List[Tuple[FillEvent, Optional[FeesEvent]]] = []
    orphans: List[FeesEvent] = []
    pending: Optional[FeesEvent] = None

    for event in events:
        if isinstance(event, FeesEvent):
            if pending is not None:
                orphans.append(pending)
            pending = event
        elif isinstance(event, FillEvent):
            pairs.append((event, pending))
            pending = None

    if pending is not None:
        orphans.append(pending)
    return pairs, orphans


def _fill_to_trade(signature: str, block_time: datetime, fill: FillEvent, fees: Optional[FeesEvent]) -> Trade:
    is_perp = fill.market_type == "perp"
    size = abs(fill.qty) / DEC
    price = fill.price / DEC
    pnl = fill.crncy / DEC
    notional = price * size
    kind = "pf" if is_perp else "sf"

    return Trade(
        id=f"{signature[:16]}-{kind}-{fill.order_id}",
        symbol=resolve_symbol(fill.instr_id, is_perp),
        market_type=fill.market_type,
        side="long" if fill.side == 0 else "short",
        order_type="market",
        status="closed",
        entry_price=price,
        exit_price=price,
        size=size,
        leverage=1,
        entry_time=block_time,
        exit_time=block_time,
        pnl=pnl,
        pnl_percent=(pnl / notional) * 100 if notional > 0 else 0.0,
        fees=abs(fees.fees) / DEC if fees else 0.0,
        maker_rebate=abs(fees.ref_payment) / DEC if fees else 0.0,
        tx_signature=signature,
        exit_tx_signature=signature,
    )


def transaction_to_dataset(signature: str, block_time: datetime, events: List[LogEvent]) -> TradeDataset:
    """
    Maps the decoded events of one transaction into analytics records.
    """
    pairs, orphans = pair_fills_with_fees(events)
    if orphans:
        logger.warning(f"{len(orphans)} fee event(s) without a following fill in tx {signature[:16]}")

    trades = [_fill_to_trade(signature, block_time, fill, fees) for fill, fees in pairs]

    fee_records = []
    funding_payments = []
    for index, event in enumerate(events):
        if isinstance(event, FeesEvent):
            kind = "pfee" if event.market_type == "perp" else "sfee"
            fee_records.append(FeeRecord(
                id=f"{signature[:16]}-{kind}-{index}",
                timestamp=block_time,
                symbol=event.market_type.upper(),
                type="taker" if event.fees > 0 else "maker_rebate",
                amount=event.fees / DEC,
                tx_signature=signature,
            ))
        elif isinstance(event, FundingEvent):
            funding_payments.append(FundingPayment(
                id=f"{signature[:16]}-fund-{event.instr_id}",
                symbol=resolve_symbol(event.instr_id, True),
                timestamp=datetime.fromtimestamp(event.time, tz=timezone.utc),
                amount=event.funding / DEC,
            ))

    return TradeDataset(trades=trades, fee_records=fee_records, funding_payments=funding_payments)


def merge_datasets(datasets: List[TradeDataset]) -> TradeDataset:
    merged = TradeDataset()
    for ds in datasets:
        merged.trades.extend(ds.trades)
        merged.fee_records.extend(ds.fee_records)
        merged.funding_payments.extend(ds.funding_payments)
    return merged
