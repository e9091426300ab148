import asyncio
import logging
import os
from datetime import datetime, timezone
from typing import Any, List, Optional

import httpx

from src.core.entities.position import Position
from src.core.entities.trade import TradeDataset
from src.core.interfaces.datasource import IDataSource
from src.core.use_cases.log_decoder import (
    decode_events,
    invokes_program,
    merge_datasets,
    transaction_to_dataset,
)

logger = logging.getLogger(__name__)

DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"
DERIVERSE_PROGRAM_ID = "DRVSpZ2YUYYKgZP8XtLhAGtT1zYSCKzeHfb4DgRnrgqD"
MAX_SIGNATURES = 100
# Pause between RPC calls to stay under public-node rate limits
REQUEST_DELAY_SECONDS = 0.25


class DeriverseRpcGateway(IDataSource):
    """
    Implementation of IDataSource over Solana JSON-RPC.
    Reads a wallet's recent transactions, keeps those that invoked the
    Deriverse program and decodes their program-data logs.
    """

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        program_id: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        request_delay: float = REQUEST_DELAY_SECONDS,
    ):
        self.rpc_url = rpc_url or os.getenv("RPC_URL", DEFAULT_RPC_URL)
        self.program_id = program_id or os.getenv("DERIVERSE_PROGRAM_ID", DERIVERSE_PROGRAM_ID)
        self.client = client or httpx.AsyncClient(timeout=30.0)
        self.request_delay = request_delay
        self._request_id = 0
        logger.info(f"DeriverseRpcGateway initialized. URL: {self.rpc_url}")

    async def _rpc(self, method: str, params: List[Any]) -> Any:
        self._request_id += 1
        payload = {"jsonrpc": "2.0", "id": self._request_id, "method": method, "params": params}
        resp = await self.client.post(self.rpc_url, json=payload)
        resp.raise_for_status()
        body = resp.json()
        if body.get("error"):
            raise RuntimeError(f"RPC {method} failed: {body['error']}")
        return body.get("result")

    async def get_dataset(self, wallet: str) -> TradeDataset:
        try:
            signatures = await self._rpc(
                "getSignaturesForAddress", [wallet, {"limit": MAX_SIGNATURES}]
            ) or []
        except Exception as e:
            logger.error(f"Failed to fetch signatures for {wallet}: {e}")
            return TradeDataset()

        logger.info(f"Found {len(signatures)} signatures for {wallet}")

        datasets = []
        for sig_info in signatures:
            if sig_info.get("err"):
                continue
            signature = sig_info["signature"]
            try:
                await asyncio.sleep(self.request_delay)
                tx = await self._rpc(
                    "getTransaction",
                    [signature, {"encoding": "json", "maxSupportedTransactionVersion": 0}],
                )
            except Exception as e:
                # rate limits and transient node errors only cost this tx
                logger.warning(f"Skipping tx {signature[:16]}: {e}")
                continue

            parsed = self._parse_transaction(signature, tx)
            if parsed is not None:
                datasets.append(parsed)

        dataset = merge_datasets(datasets)
        logger.info(
            f"Parsed {len(dataset.trades)} fills, {len(dataset.fee_records)} fee records, "
            f"{len(dataset.funding_payments)} funding payments"
        )
        return dataset

    def _parse_transaction(self, signature: str, tx: Optional[dict]) -> Optional[TradeDataset]:
        if not tx or not tx.get("meta"):
            return None

        log_messages = tx["meta"].get("logMessages") or []
        if not invokes_program(log_messages, self.program_id):
            return None

        events = decode_events(log_messages)
        if not events:
            return None

        block_time = tx.get("blockTime")
        ts = datetime.fromtimestamp(block_time, tz=timezone.utc) if block_time else datetime.now(timezone.utc)
        return transaction_to_dataset(signature, ts, events)

    async def get_positions(self, wallet: str) -> List[Position]:
        # Live positions need the venue's client-account decoder, which this gateway does not carry
        return []

    async def aclose(self):
        await self.client.aclose()
