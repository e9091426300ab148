"""
Tests for the data-source gateways, driven with canned upstream payloads.
"""
import base64
import json
from datetime import datetime, timezone

import httpx
import pytest

from src.core.entities.trade import TradeDataset
from src.core.use_cases.log_decoder import DEC, FILL_LAYOUT, LogTag
from src.infrastructure.cache.cached_datasource import CachedDataSource
from src.infrastructure.gateways.deriverse_rpc import DERIVERSE_PROGRAM_ID, DeriverseRpcGateway
from src.infrastructure.gateways.hl_public_api import HLPublicGateway
from src.infrastructure.gateways.local_mock import (
    LocalMockDataSource,
    generate_mock_fee_records,
    generate_mock_funding_payments,
    generate_mock_positions,
    generate_mock_trades,
)
from tests.conftest import FIXED_NOW, TEST_WALLET

SIG_FILL = "3" * 88
SIG_FAILED = "4" * 88
SIG_OTHER = "5" * 88


# --- Mock data source ---

def test_mock_trades_are_deterministic():
    first = generate_mock_trades(now=FIXED_NOW)
    second = generate_mock_trades(now=FIXED_NOW)
    assert first == second
    assert len(first) == 200


def test_mock_trades_shape():
    trades = generate_mock_trades(now=FIXED_NOW)

    entry_times = [t.entry_time for t in trades]
    assert entry_times == sorted(entry_times, reverse=True)
    for t in trades:
        assert t.entry_time <= FIXED_NOW
        if t.status == "open":
            assert t.pnl == 0
            assert t.exit_time is None
            assert t.exit_price is None
        else:
            assert t.exit_time < FIXED_NOW
        if t.market_type == "spot":
            assert t.leverage == 1
        else:
            assert 2 <= t.leverage <= 10
        assert len(t.tx_signature) == 88


def test_mock_seeds_change_the_data():
    assert generate_mock_trades(count=5, seed=1, now=FIXED_NOW) != generate_mock_trades(count=5, seed=2, now=FIXED_NOW)


def test_mock_positions_and_funding():
    positions = generate_mock_positions(now=FIXED_NOW)
    assert [p.symbol for p in positions] == ["SOL-PERP", "SOL/USDC", "WETH-PERP", "WBTC/USDC", "TRUMP/USDC"]
    for p in positions:
        if p.market_type == "spot":
            assert p.liquidation_price is None
        else:
            assert p.liquidation_price is not None

    funding = generate_mock_funding_payments(now=FIXED_NOW)
    assert len(funding) == 50
    assert all(f.symbol.endswith("-PERP") for f in funding)


def test_mock_fee_records_follow_trades():
    trades = generate_mock_trades(count=20, now=FIXED_NOW)
    records = generate_mock_fee_records(trades)

    taker = [r for r in records if r.type == "taker"]
    assert len(taker) == sum(1 for t in trades if t.fees > 0)
    assert all(r.amount < 0 for r in taker)
    rebates = [r for r in records if r.type == "maker_rebate"]
    assert len(rebates) == sum(1 for t in trades if t.order_type == "limit")


@pytest.mark.anyio
async def test_local_mock_data_source():
    source = LocalMockDataSource(now=FIXED_NOW, trade_count=30)
    dataset = await source.get_dataset(TEST_WALLET)
    assert len(dataset.trades) == 30
    assert dataset == await source.get_dataset("another-wallet")
    assert len(await source.get_positions(TEST_WALLET)) == 5


# --- Deriverse RPC ---

def _fill_line(order_id: int) -> str:
    payload = FILL_LAYOUT.pack(LogTag.SPOT_FILL, 0, 0, order_id, DEC, 180 * DEC, 3 * DEC)
    return "Program data: " + base64.b64encode(payload).decode()


def _rpc_handler(request: httpx.Request) -> httpx.Response:
    body = json.loads(request.content)
    method = body["method"]
    if method == "getSignaturesForAddress":
        result = [
            {"signature": SIG_FILL, "err": None},
            {"signature": SIG_FAILED, "err": {"InstructionError": [0, "Custom"]}},
            {"signature": SIG_OTHER, "err": None},
        ]
    elif method == "getTransaction":
        signature = body["params"][0]
        if signature == SIG_FILL:
            logs = [f"Program {DERIVERSE_PROGRAM_ID} invoke [1]", _fill_line(9)]
        else:
            logs = ["Program 11111111111111111111111111111111 invoke [1]", _fill_line(10)]
        result = {"blockTime": 1738591200, "meta": {"logMessages": logs}}
    else:
        return httpx.Response(400)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


@pytest.mark.anyio
async def test_deriverse_gateway_decodes_program_transactions():
    client = httpx.AsyncClient(transport=httpx.MockTransport(_rpc_handler))
    gateway = DeriverseRpcGateway(rpc_url="http://rpc.test", client=client, request_delay=0)

    dataset = await gateway.get_dataset(TEST_WALLET)
    await gateway.aclose()

    assert len(dataset.trades) == 1
    trade = dataset.trades[0]
    assert trade.id == f"{SIG_FILL[:16]}-sf-9"
    assert trade.symbol == "SOL/USDC"
    assert trade.pnl == 3.0
    assert trade.entry_time == datetime(2025, 2, 3, 14, 0, tzinfo=timezone.utc)
    assert await gateway.get_positions(TEST_WALLET) == []


@pytest.mark.anyio
async def test_deriverse_gateway_returns_empty_on_rpc_failure():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(503)))
    gateway = DeriverseRpcGateway(rpc_url="http://rpc.test", client=client, request_delay=0)

    dataset = await gateway.get_dataset(TEST_WALLET)
    await gateway.aclose()
    assert dataset == TradeDataset()


# --- Hyperliquid ---

class FakeInfo:
    def __init__(self, responses):
        self.responses = responses

    def post(self, path, payload):
        return self.responses[payload["type"]]


def _hl_gateway(responses) -> HLPublicGateway:
    # Skip __init__; it would open a client against the live API
    gateway = HLPublicGateway.__new__(HLPublicGateway)
    gateway.info = FakeInfo(responses)
    return gateway


@pytest.mark.anyio
async def test_hl_gateway_maps_fills_and_funding():
    responses = {
        "userFills": [
            {"coin": "ETH", "px": "2000", "sz": "0.5", "side": "A", "dir": "Close Long", "closedPnl": "25",
             "fee": "0.4", "time": 1738591260000, "hash": "0xabc", "tid": 2, "crossed": True},
            {"coin": "@107", "px": "10", "sz": "3", "side": "B", "dir": "Buy", "closedPnl": "0",
             "fee": "-0.01", "time": 1738591200000, "hash": "0xdef", "tid": 1, "crossed": False},
            {"coin": "BROKEN"},
        ],
        "userFunding": [
            {"time": 1738591200000, "hash": "0x0", "delta": {"type": "funding", "coin": "ETH", "usdc": "-1.2",
                                                             "fundingRate": "0.0001", "szi": "-0.5"}},
            {"time": 1738591200000, "hash": "0x1", "delta": {"type": "deposit", "usdc": "100"}},
        ],
    }
    dataset = await _hl_gateway(responses).get_dataset(TEST_WALLET)

    assert [t.symbol for t in dataset.trades] == ["@107", "ETH-PERP"]
    spot, perp = dataset.trades
    assert spot.market_type == "spot"
    assert spot.order_type == "limit"
    assert spot.maker_rebate == pytest.approx(0.01)
    assert perp.side == "long"
    assert perp.order_type == "market"
    assert perp.pnl == 25.0
    assert perp.pnl_percent == pytest.approx(2.5)

    assert {r.type for r in dataset.fee_records} == {"taker", "maker_rebate"}
    assert len(dataset.funding_payments) == 1
    assert dataset.funding_payments[0].amount == -1.2
    assert dataset.funding_payments[0].position_size == 0.5


@pytest.mark.anyio
async def test_hl_gateway_positions():
    state = {"assetPositions": [
        {"position": {"coin": "BTC", "szi": "-0.1", "entryPx": "95000", "positionValue": "9600",
                      "marginUsed": "960", "unrealizedPnl": "-100", "leverage": {"value": 10},
                      "cumFunding": {"sinceOpen": "2.5"}, "liquidationPx": "104000"}},
        {"position": {"coin": "ETH", "szi": "0"}},
    ]}
    positions = await _hl_gateway({"clearinghouseState": state}).get_positions(TEST_WALLET)

    assert len(positions) == 1
    pos = positions[0]
    assert pos.symbol == "BTC-PERP"
    assert pos.side == "short"
    assert pos.current_price == pytest.approx(96000.0)
    assert pos.leverage == 10
    assert pos.funding_accrued == -2.5
    assert pos.liquidation_price == 104000.0


# --- Cache ---

class FakeCache:
    def __init__(self):
        self.store = {}

    def get_model(self, key, model):
        return self.store.get(key)

    def set_model(self, key, value, ttl_seconds=300):
        self.store[key] = value


class CountingSource(LocalMockDataSource):
    def __init__(self, empty: bool = False):
        super().__init__(now=FIXED_NOW, trade_count=10)
        self.calls = 0
        self.empty = empty

    async def get_dataset(self, wallet):
        self.calls += 1
        if self.empty:
            return TradeDataset()
        return await super().get_dataset(wallet)


@pytest.mark.anyio
async def test_cached_datasource_serves_second_call_from_cache():
    inner = CountingSource()
    cache = FakeCache()
    cached = CachedDataSource(inner, cache, ttl_seconds=60)

    first = await cached.get_dataset(TEST_WALLET)
    second = await cached.get_dataset(TEST_WALLET)

    assert first == second
    assert inner.calls == 1
    assert CachedDataSource.cache_key(TEST_WALLET) in cache.store


@pytest.mark.anyio
async def test_cached_datasource_skips_empty_results():
    inner = CountingSource(empty=True)
    cached = CachedDataSource(inner, FakeCache(), ttl_seconds=60)

    await cached.get_dataset(TEST_WALLET)
    await cached.get_dataset(TEST_WALLET)
    assert inner.calls == 2


@pytest.mark.anyio
async def test_cached_datasource_closes_the_inner_client():
    client = httpx.AsyncClient(transport=httpx.MockTransport(_rpc_handler))
    cached = CachedDataSource(DeriverseRpcGateway(rpc_url="http://rpc.test", client=client), FakeCache())

    await cached.aclose()
    assert client.is_closed


@pytest.mark.anyio
async def test_sources_without_clients_close_quietly():
    await CachedDataSource(CountingSource(), FakeCache()).aclose()
