import asyncio
import logging
import os
from datetime import datetime, timezone
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from src.core.entities.analytics import (
    AnalyticsSummary,
    CumulativeFeePoint,
    DailyPnl,
    DrawdownPoint,
    FeeBreakdownItem,
    FundingSummary,
    HourlyPerformance,
    MonthlyReturn,
    OrderTypePerformance,
    PnlDistribution,
    PricePoint,
    SessionPerformance,
    SymbolPerformance,
)
from src.core.entities.annotation import AnnotationPatch, JournalAnnotation
from src.core.entities.dashboard import DashboardResponse
from src.core.entities.filters import DateRange, FilterState
from src.core.entities.pattern import TradePattern
from src.core.entities.position import PortfolioSnapshot
from src.core.entities.risk import RiskScore
from src.core.entities.trade import MarketType, OrderSide, Trade
from src.core.interfaces.annotations import IAnnotationRepository
from src.core.interfaces.datasource import IDataSource
from src.core.services import AnalyticsService
from src.core.use_cases.distribution import compute_pnl_distribution
from src.core.use_cases.fee_analytics import (
    compute_cumulative_fees,
    compute_fee_breakdown,
    compute_funding_summary,
)
from src.core.use_cases.pattern_detector import detect_patterns
from src.core.use_cases.risk_scorer import compute_risk_score
from src.core.use_cases.summary_aggregator import compute_summary
from src.core.use_cases.time_buckets import (
    compute_daily_pnl,
    compute_drawdown,
    compute_hourly_performance,
    compute_monthly_returns,
    compute_order_type_performance,
    compute_session_performance,
    compute_symbol_performance,
)
from src.core.use_cases.trade_filter import unique_symbols
from src.core.use_cases.trade_replay import generate_mini_price_data
from src.infrastructure.cache.cached_datasource import CachedDataSource
from src.infrastructure.cache.redis_service import RedisService
from src.infrastructure.gateways.deriverse_rpc import DeriverseRpcGateway
from src.infrastructure.gateways.hl_public_api import HLPublicGateway
from src.infrastructure.gateways.local_mock import LocalMockDataSource
from src.infrastructure.persistence.annotation_store import JsonFileAnnotationRepository
from src.infrastructure.persistence.postgres_repo import PostgresAnnotationRepository, PostgresRepo

# Setup Logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("TradeTrace")

MIN_WALLET_LENGTH = 32


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    for source in _datasources.values():
        await source.aclose()
    _datasources.clear()


app = FastAPI(
    lifespan=lifespan,
    title="TradeTrace API",
    version="2.0.0",
    description="Trading journal and performance analytics API",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Dependency Injection ---

def data_source_mode() -> str:
    return os.getenv("DATA_SOURCE", "mock").lower()


def get_repo() -> Optional[PostgresRepo]:
    db_url = os.getenv("DATABASE_URL")
    if not db_url:
        return None
    try:
        return PostgresRepo(db_url)
    except Exception as e:
        logger.error(f"Failed to connect to DB: {e}")
        return None


# One source per DATA_SOURCE mode, shared by every request
_datasources: Dict[str, IDataSource] = {}


def _build_datasource(mode: str) -> IDataSource:
    if mode == "deriverse":
        source: IDataSource = DeriverseRpcGateway()
    elif mode == "hyperliquid":
        source = HLPublicGateway()
    elif mode == "postgres":
        repo = get_repo()
        if repo is None:
            raise HTTPException(status_code=503, detail="Database not configured or unavailable")
        # Stored data is already local; no cache in front of it
        return repo
    else:
        return LocalMockDataSource()
    return CachedDataSource(source, RedisService())


def get_datasource() -> IDataSource:
    mode = data_source_mode()
    if mode not in _datasources:
        _datasources[mode] = _build_datasource(mode)
    return _datasources[mode]


def get_service(gateway: IDataSource = Depends(get_datasource)) -> AnalyticsService:
    return AnalyticsService(gateway)


@lru_cache(maxsize=1)
def get_annotation_repo() -> IAnnotationRepository:
    db_url = os.getenv("DATABASE_URL")
    if db_url:
        try:
            return PostgresAnnotationRepository(db_url)
        except Exception as e:
            logger.error(f"Failed to open annotation table, falling back to JSON file: {e}")
    return JsonFileAnnotationRepository()


def require_wallet(wallet: Optional[str] = Query(None, description="Wallet address")) -> str:
    if not wallet or len(wallet) < MIN_WALLET_LENGTH:
        raise HTTPException(status_code=400, detail="A valid wallet address is required")
    return wallet


def get_filters(
    symbol: Optional[str] = Query(None, description="Exact symbol, e.g. SOL-PERP"),
    side: Optional[OrderSide] = Query(None),
    marketType: Optional[MarketType] = Query(None),
    fromTs: Optional[datetime] = Query(None, description="Inclusive start (ISO 8601)"),
    toTs: Optional[datetime] = Query(None, description="Inclusive end (ISO 8601)"),
) -> FilterState:
    date_range = None
    if fromTs is not None or toTs is not None:
        date_range = DateRange(
            start=fromTs or datetime.min.replace(tzinfo=timezone.utc),
            end=toTs or datetime.max.replace(tzinfo=timezone.utc),
        )
    return FilterState(symbol=symbol, side=side, market_type=marketType, date_range=date_range)


# --- Endpoints ---

@app.get("/health")
async def health():
    return {"status": "healthy", "mode": data_source_mode()}


@app.get("/v1/trades", response_model=List[Trade])
async def get_trades(
    wallet: str = Depends(require_wallet),
    filters: FilterState = Depends(get_filters),
    service: AnalyticsService = Depends(get_service),
):
    return await service.get_filtered_trades(wallet, filters)


@app.get("/v1/symbols", response_model=List[str])
async def get_symbols(
    wallet: str = Depends(require_wallet),
    service: AnalyticsService = Depends(get_service),
):
    dataset = await service.get_dataset(wallet)
    return unique_symbols(dataset.trades)


@app.get("/v1/trades/{trade_id}/replay", response_model=List[PricePoint])
async def get_trade_replay(
    trade_id: str,
    wallet: str = Depends(require_wallet),
    service: AnalyticsService = Depends(get_service),
):
    trade = await service.find_trade(wallet, trade_id)
    if trade is None:
        raise HTTPException(status_code=404, detail=f"Trade {trade_id} not found")
    return generate_mini_price_data(trade)


@app.get("/v1/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    wallet: str = Depends(require_wallet),
    filters: FilterState = Depends(get_filters),
    service: AnalyticsService = Depends(get_service),
):
    """
    Every analytics view for the filtered trade set in one response.
    """
    return await service.get_dashboard(wallet, filters)


@app.get("/v1/portfolio", response_model=PortfolioSnapshot)
async def get_portfolio(
    wallet: str = Depends(require_wallet),
    service: AnalyticsService = Depends(get_service),
):
    return await service.get_portfolio(wallet)


# --- Individual analytics views ---

@app.get("/v1/analytics/summary", response_model=AnalyticsSummary)
async def get_summary(
    wallet: str = Depends(require_wallet),
    filters: FilterState = Depends(get_filters),
    service: AnalyticsService = Depends(get_service),
):
    return compute_summary(await service.get_filtered_trades(wallet, filters))


@app.get("/v1/analytics/daily", response_model=List[DailyPnl])
async def get_daily_pnl(
    wallet: str = Depends(require_wallet),
    filters: FilterState = Depends(get_filters),
    service: AnalyticsService = Depends(get_service),
):
    return compute_daily_pnl(await service.get_filtered_trades(wallet, filters))


@app.get("/v1/analytics/drawdown", response_model=List[DrawdownPoint])
async def get_drawdown(
    wallet: str = Depends(require_wallet),
    filters: FilterState = Depends(get_filters),
    service: AnalyticsService = Depends(get_service),
):
    trades = await service.get_filtered_trades(wallet, filters)
    return compute_drawdown(compute_daily_pnl(trades))


@app.get("/v1/analytics/sessions", response_model=List[SessionPerformance])
async def get_sessions(
    wallet: str = Depends(require_wallet),
    filters: FilterState = Depends(get_filters),
    service: AnalyticsService = Depends(get_service),
):
    return compute_session_performance(await service.get_filtered_trades(wallet, filters))


@app.get("/v1/analytics/hourly", response_model=List[HourlyPerformance])
async def get_hourly(
    wallet: str = Depends(require_wallet),
    filters: FilterState = Depends(get_filters),
    service: AnalyticsService = Depends(get_service),
):
    return compute_hourly_performance(await service.get_filtered_trades(wallet, filters))


@app.get("/v1/analytics/order-types", response_model=List[OrderTypePerformance])
async def get_order_types(
    wallet: str = Depends(require_wallet),
    filters: FilterState = Depends(get_filters),
    service: AnalyticsService = Depends(get_service),
):
    return compute_order_type_performance(await service.get_filtered_trades(wallet, filters))


@app.get("/v1/analytics/symbols", response_model=List[SymbolPerformance])
async def get_symbol_performance(
    wallet: str = Depends(require_wallet),
    filters: FilterState = Depends(get_filters),
    service: AnalyticsService = Depends(get_service),
):
    return compute_symbol_performance(await service.get_filtered_trades(wallet, filters))


@app.get("/v1/analytics/monthly", response_model=List[MonthlyReturn])
async def get_monthly(
    wallet: str = Depends(require_wallet),
    filters: FilterState = Depends(get_filters),
    service: AnalyticsService = Depends(get_service),
):
    return compute_monthly_returns(await service.get_filtered_trades(wallet, filters))


@app.get("/v1/analytics/risk", response_model=RiskScore)
async def get_risk(
    wallet: str = Depends(require_wallet),
    filters: FilterState = Depends(get_filters),
    service: AnalyticsService = Depends(get_service),
):
    trades = await service.get_filtered_trades(wallet, filters)
    return compute_risk_score(trades, compute_summary(trades))


@app.get("/v1/analytics/patterns", response_model=List[TradePattern])
async def get_patterns(
    wallet: str = Depends(require_wallet),
    filters: FilterState = Depends(get_filters),
    service: AnalyticsService = Depends(get_service),
):
    return detect_patterns(await service.get_filtered_trades(wallet, filters))


@app.get("/v1/analytics/distribution", response_model=PnlDistribution)
async def get_distribution(
    wallet: str = Depends(require_wallet),
    filters: FilterState = Depends(get_filters),
    service: AnalyticsService = Depends(get_service),
):
    return compute_pnl_distribution(await service.get_filtered_trades(wallet, filters))


# Fee and funding views cover the whole dataset; trade filters do not apply

@app.get("/v1/analytics/fees", response_model=List[FeeBreakdownItem])
async def get_fees(
    wallet: str = Depends(require_wallet),
    service: AnalyticsService = Depends(get_service),
):
    dataset = await service.get_dataset(wallet)
    return compute_fee_breakdown(dataset.fee_records)


@app.get("/v1/analytics/fees/cumulative", response_model=List[CumulativeFeePoint])
async def get_cumulative_fees(
    wallet: str = Depends(require_wallet),
    service: AnalyticsService = Depends(get_service),
):
    dataset = await service.get_dataset(wallet)
    return compute_cumulative_fees(dataset.fee_records)


@app.get("/v1/analytics/funding", response_model=FundingSummary)
async def get_funding(
    wallet: str = Depends(require_wallet),
    service: AnalyticsService = Depends(get_service),
):
    dataset = await service.get_dataset(wallet)
    return compute_funding_summary(dataset.funding_payments)


# --- Journal annotations ---

@app.get("/v1/annotations", response_model=List[JournalAnnotation])
async def list_annotations(repo: IAnnotationRepository = Depends(get_annotation_repo)):
    return repo.list_all()


@app.get("/v1/annotations/{trade_id}", response_model=JournalAnnotation)
async def get_annotation(trade_id: str, repo: IAnnotationRepository = Depends(get_annotation_repo)):
    annotation = repo.get(trade_id)
    if annotation is None:
        raise HTTPException(status_code=404, detail=f"No annotation for trade {trade_id}")
    return annotation


@app.put("/v1/annotations/{trade_id}", response_model=JournalAnnotation)
async def put_annotation(
    trade_id: str,
    patch: AnnotationPatch,
    repo: IAnnotationRepository = Depends(get_annotation_repo),
):
    return repo.upsert(trade_id, patch)


# --- Persistence Endpoint ---

@app.post("/v1/sync")
async def sync_data(
    wallet: str = Depends(require_wallet),
    gateway: IDataSource = Depends(get_datasource),
    repo: Optional[PostgresRepo] = Depends(get_repo),
):
    """
    Fetches the wallet's dataset from the configured source and persists it to Postgres.
    """
    if not repo:
        raise HTTPException(status_code=503, detail="Database not configured or unavailable")

    dataset = await gateway.get_dataset(wallet)

    # Persist to DB (Offload to thread to avoid blocking async loop)
    try:
        stats = await asyncio.to_thread(repo.bulk_insert_dataset, dataset, wallet)
    except Exception as e:
        logger.error(f"Failed to persist for {wallet}: {e}")
        raise HTTPException(status_code=503, detail="Failed to persist dataset")

    stats["trades_fetched"] = len(dataset.trades)
    return {"status": "success", "stats": stats}
