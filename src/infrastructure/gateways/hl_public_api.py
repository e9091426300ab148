import asyncio
import logging
import os
from datetime import datetime, timezone
from typing import List

from hyperliquid.info import Info
from hyperliquid.utils import constants

from src.core.entities.fees import FeeRecord, FundingPayment
from src.core.entities.position import Position
from src.core.entities.trade import Trade, TradeDataset
from src.core.interfaces.datasource import IDataSource

logger = logging.getLogger(__name__)


def _ms_to_dt(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


class HLPublicGateway(IDataSource):
    """
    Implementation of IDataSource for the Hyperliquid Public Info API.
    Uses the official Python SDK wrapped in asyncio threads for non-blocking execution.
    """

    def __init__(self, use_testnet: bool = None):
        """
        Initialize the Hyperliquid Info client.

        :param use_testnet: Boolean to toggle between Mainnet and Testnet.
            Defaults to the HL_USE_TESTNET env var.
        """
        if use_testnet is None:
            use_testnet = os.getenv("HL_USE_TESTNET", "false").lower() == "true"
        api_url = constants.TESTNET_API_URL if use_testnet else constants.MAINNET_API_URL

        # 'skip_ws=True' is crucial here as we only need REST endpoints for history
        self.info = Info(base_url=api_url, skip_ws=True)
        logger.info(f"HLPublicGateway initialized. URL: {api_url}")

    async def get_dataset(self, wallet: str) -> TradeDataset:
        trades, fee_records = await self._get_fills(wallet)
        funding = await self._get_funding(wallet)
        return TradeDataset(trades=trades, fee_records=fee_records, funding_payments=funding)

    async def _get_fills(self, wallet: str):
        """
        Fetches fills using the 'userFills' endpoint. Every fill becomes one
        closed trade; the venue already reports closedPnl per fill.
        """
        try:
            # The SDK is synchronous, so we run it in a separate thread to stay async
            raw_fills = await asyncio.to_thread(self.info.post, "/info", {"type": "userFills", "user": wallet})
        except Exception as e:
            logger.error(f"Failed to fetch fills for {wallet}: {str(e)}")
            return [], []

        trades = []
        fee_records = []
        for fill in raw_fills:
            try:
                trade, fee = self._map_fill(fill)
                trades.append(trade)
                if fee is not None:
                    fee_records.append(fee)
            except Exception as map_err:
                logger.warning(f"Skipping malformed fill: {map_err}")
                continue

        # API returns most recent first
        trades.sort(key=lambda t: t.entry_time)
        return trades, fee_records

    def _map_fill(self, fill: dict):
        coin = fill["coin"]
        # Spot pairs are addressed as "@<index>" or "BASE/QUOTE"
        is_spot = coin.startswith("@") or "/" in coin
        direction = fill.get("dir", "")
        if "Long" in direction:
            side = "long"
        elif "Short" in direction:
            side = "short"
        else:
            side = "long" if fill.get("side") == "B" else "short"

        px = float(fill["px"])
        sz = float(fill["sz"])
        pnl = float(fill.get("closedPnl", 0))
        fee = float(fill.get("fee", 0))
        ts = _ms_to_dt(fill["time"])
        tx_hash = fill.get("hash", "")
        notional = px * sz

        trade = Trade(
            id=f"{tx_hash[:16]}-{fill.get('tid', fill.get('oid'))}",
            symbol=coin if is_spot else f"{coin}-PERP",
            market_type="spot" if is_spot else "perp",
            side=side,
            # crossed = the fill took liquidity
            order_type="market" if fill.get("crossed") else "limit",
            status="closed",
            entry_price=px,
            exit_price=px,
            size=sz,
            leverage=1,
            entry_time=ts,
            exit_time=ts,
            pnl=pnl,
            pnl_percent=(pnl / notional) * 100 if notional > 0 else 0.0,
            fees=max(fee, 0.0),
            maker_rebate=max(-fee, 0.0),
            tx_signature=tx_hash,
            exit_tx_signature=tx_hash,
        )

        fee_record = None
        if fee != 0:
            fee_record = FeeRecord(
                id=f"fee-{trade.id}",
                timestamp=ts,
                symbol=trade.symbol,
                type="taker" if fee > 0 else "maker_rebate",
                amount=-fee,
                tx_signature=tx_hash,
            )
        return trade, fee_record

    async def _get_funding(self, wallet: str) -> List[FundingPayment]:
        payload = {"type": "userFunding", "user": wallet, "startTime": 0}
        try:
            raw_updates = await asyncio.to_thread(self.info.post, "/info", payload)
        except Exception as e:
            logger.error(f"Failed to fetch funding for {wallet}: {e}")
            return []

        payments = []
        for update in raw_updates:
            try:
                delta = update.get("delta", {})
                if delta.get("type") != "funding":
                    continue
                payments.append(FundingPayment(
                    id=f"{update.get('hash', '')[:16]}-fund-{delta['coin']}-{update['time']}",
                    symbol=f"{delta['coin']}-PERP",
                    timestamp=_ms_to_dt(update["time"]),
                    amount=float(delta.get("usdc", 0)),
                    rate=float(delta.get("fundingRate", 0)),
                    position_size=abs(float(delta.get("szi", 0))),
                ))
            except Exception as e:
                logger.warning(f"Skipping malformed funding update: {e}")
                continue

        payments.sort(key=lambda p: p.timestamp)
        return payments

    async def get_positions(self, wallet: str) -> List[Position]:
        """
        Fetches open perp positions from the clearinghouseState endpoint.
        """
        try:
            state = await asyncio.to_thread(
                self.info.post, "/info",
                {"type": "clearinghouseState", "user": wallet}
            )
        except Exception as e:
            logger.error(f"Failed to fetch positions for {wallet}: {e}")
            return []

        now = datetime.now(timezone.utc)
        positions = []
        for asset_pos in state.get("assetPositions", []):
            pos = asset_pos.get("position", {})
            try:
                szi = float(pos.get("szi", 0))
                if szi == 0:
                    continue
                size = abs(szi)
                position_value = float(pos.get("positionValue", 0))
                margin = float(pos.get("marginUsed", 0))
                unrealized = float(pos.get("unrealizedPnl", 0))
                positions.append(Position(
                    id=f"perp-{pos['coin']}-{wallet}",
                    symbol=f"{pos['coin']}-PERP",
                    market_type="perp",
                    side="long" if szi > 0 else "short",
                    entry_price=float(pos.get("entryPx", 0)),
                    current_price=position_value / size,
                    size=size,
                    leverage=int(pos.get("leverage", {}).get("value", 1)),
                    margin=margin,
                    unrealized_pnl=unrealized,
                    unrealized_pnl_percent=(unrealized / margin) * 100 if margin > 0 else 0.0,
                    funding_accrued=-float(pos.get("cumFunding", {}).get("sinceOpen", 0)),
                    open_time=now,
                    liquidation_price=float(pos["liquidationPx"]) if pos.get("liquidationPx") else None,
                ))
            except Exception as e:
                logger.warning(f"Skipping malformed position: {e}")
                continue
        return positions
