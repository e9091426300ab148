import psycopg2
from psycopg2.extras import execute_values
from typing import Dict, List, Optional

from src.core.entities.annotation import AnnotationPatch, JournalAnnotation, apply_patch
from src.core.entities.fees import FeeRecord, FundingPayment
from src.core.entities.position import Position
from src.core.entities.trade import Trade, TradeDataset
from src.core.interfaces.annotations import IAnnotationRepository
from src.core.interfaces.datasource import IDataSource

TRADE_COLUMNS = (
    "id, symbol, market_type, side, order_type, status, entry_price, exit_price, size, leverage, "
    "entry_time, exit_time, pnl, pnl_percent, fees, maker_rebate, funding_paid, funding_received, "
    "tx_signature, exit_tx_signature"
)


class PostgresRepo(IDataSource):
    """
    Stores synced datasets per wallet and serves them back as a data source.
    """

    def __init__(self, dsn: str):
        self.dsn = dsn
        self._init_db()

    def _init_db(self):
        conn = psycopg2.connect(self.dsn)
        cur = conn.cursor()

        # Trades Table
        cur.execute("""
            CREATE TABLE IF NOT EXISTS trades (
                id VARCHAR NOT NULL,
                wallet VARCHAR NOT NULL,
                symbol VARCHAR,
                market_type VARCHAR,
                side VARCHAR,
                order_type VARCHAR,
                status VARCHAR,
                entry_price DECIMAL,
                exit_price DECIMAL,
                size DECIMAL,
                leverage INTEGER,
                entry_time TIMESTAMPTZ,
                exit_time TIMESTAMPTZ,
                pnl DECIMAL,
                pnl_percent DECIMAL,
                fees DECIMAL,
                maker_rebate DECIMAL,
                funding_paid DECIMAL,
                funding_received DECIMAL,
                tx_signature VARCHAR,
                exit_tx_signature VARCHAR,
                PRIMARY KEY (wallet, id)
            );
        """)

        # Fee Records Table
        cur.execute("""
            CREATE TABLE IF NOT EXISTS fee_records (
                id VARCHAR NOT NULL,
                wallet VARCHAR NOT NULL,
                timestamp TIMESTAMPTZ,
                symbol VARCHAR,
                type VARCHAR,
                amount DECIMAL,
                tx_signature VARCHAR,
                PRIMARY KEY (wallet, id)
            );
        """)

        # Funding Payments Table
        cur.execute("""
            CREATE TABLE IF NOT EXISTS funding_payments (
                id VARCHAR NOT NULL,
                wallet VARCHAR NOT NULL,
                symbol VARCHAR,
                timestamp TIMESTAMPTZ,
                amount DECIMAL,
                rate DECIMAL,
                position_size DECIMAL,
                PRIMARY KEY (wallet, id)
            );
        """)

        conn.commit()
        cur.close()
        conn.close()

    def bulk_insert_dataset(self, dataset: TradeDataset, wallet: str) -> Dict[str, int]:
        """
        Inserts every record of the dataset under this wallet; rows the wallet
        already has are kept. Returns the number of rows actually inserted
        per table.
        """
        conn = psycopg2.connect(self.dsn)
        cur = conn.cursor()

        trade_rows = [
            (t.id, wallet, t.symbol, t.market_type, t.side, t.order_type, t.status,
             t.entry_price, t.exit_price, t.size, t.leverage, t.entry_time, t.exit_time,
             t.pnl, t.pnl_percent, t.fees, t.maker_rebate, t.funding_paid, t.funding_received,
             t.tx_signature, t.exit_tx_signature)
            for t in dataset.trades
        ]
        fee_rows = [
            (f.id, wallet, f.timestamp, f.symbol, f.type, f.amount, f.tx_signature)
            for f in dataset.fee_records
        ]
        funding_rows = [
            (f.id, wallet, f.symbol, f.timestamp, f.amount, f.rate, f.position_size)
            for f in dataset.funding_payments
        ]

        # RETURNING only yields rows that did not hit the (wallet, id) conflict
        stats = {
            "trades_saved": self._insert(cur, f"""
                INSERT INTO trades ({TRADE_COLUMNS.replace('id, ', 'id, wallet, ', 1)})
                VALUES %s ON CONFLICT (wallet, id) DO NOTHING RETURNING id
            """, trade_rows),
            "fee_records_saved": self._insert(cur, """
                INSERT INTO fee_records (id, wallet, timestamp, symbol, type, amount, tx_signature)
                VALUES %s ON CONFLICT (wallet, id) DO NOTHING RETURNING id
            """, fee_rows),
            "funding_payments_saved": self._insert(cur, """
                INSERT INTO funding_payments (id, wallet, symbol, timestamp, amount, rate, position_size)
                VALUES %s ON CONFLICT (wallet, id) DO NOTHING RETURNING id
            """, funding_rows),
        }

        conn.commit()
        cur.close()
        conn.close()
        return stats

    @staticmethod
    def _insert(cur, sql: str, rows: List[tuple]) -> int:
        if not rows:
            return 0
        inserted = execute_values(cur, sql, rows, fetch=True)
        return len(inserted)

    # IDataSource Implementation
    async def get_dataset(self, wallet: str) -> TradeDataset:
        conn = psycopg2.connect(self.dsn)
        cur = conn.cursor()

        cur.execute(f"SELECT {TRADE_COLUMNS} FROM trades WHERE wallet = %s ORDER BY entry_time", (wallet,))
        trades = []
        for row in cur.fetchall():
            trades.append(Trade(
                id=row[0],
                symbol=row[1],
                market_type=row[2],
                side=row[3],
                order_type=row[4],
                status=row[5],
                entry_price=float(row[6]),
                exit_price=float(row[7]) if row[7] is not None else None,
                size=float(row[8]),
                leverage=row[9],
                entry_time=row[10],
                exit_time=row[11],
                pnl=float(row[12]),
                pnl_percent=float(row[13]),
                fees=float(row[14]),
                maker_rebate=float(row[15]),
                funding_paid=float(row[16]),
                funding_received=float(row[17]),
                tx_signature=row[18],
                exit_tx_signature=row[19],
            ))

        cur.execute("""
            SELECT id, timestamp, symbol, type, amount, tx_signature
            FROM fee_records WHERE wallet = %s ORDER BY timestamp
        """, (wallet,))
        fee_records = [
            FeeRecord(id=row[0], timestamp=row[1], symbol=row[2], type=row[3],
                      amount=float(row[4]), tx_signature=row[5])
            for row in cur.fetchall()
        ]

        cur.execute("""
            SELECT id, symbol, timestamp, amount, rate, position_size
            FROM funding_payments WHERE wallet = %s ORDER BY timestamp
        """, (wallet,))
        funding = [
            FundingPayment(id=row[0], symbol=row[1], timestamp=row[2], amount=float(row[3]),
                           rate=float(row[4]), position_size=float(row[5]))
            for row in cur.fetchall()
        ]

        cur.close()
        conn.close()
        return TradeDataset(trades=trades, fee_records=fee_records, funding_payments=funding)

    async def get_positions(self, wallet: str) -> List[Position]:
        # Positions are live venue state and are not synced
        return []


class PostgresAnnotationRepository(IAnnotationRepository):
    def __init__(self, dsn: str):
        self.dsn = dsn
        self._init_db()

    def _init_db(self):
        conn = psycopg2.connect(self.dsn)
        cur = conn.cursor()
        cur.execute("""
            CREATE TABLE IF NOT EXISTS annotations (
                trade_id VARCHAR PRIMARY KEY,
                notes TEXT,
                tags TEXT[],
                rating INTEGER,
                screenshot_url VARCHAR,
                updated_at TIMESTAMPTZ
            );
        """)
        conn.commit()
        cur.close()
        conn.close()

    @staticmethod
    def _row_to_annotation(row) -> JournalAnnotation:
        return JournalAnnotation(
            trade_id=row[0],
            notes=row[1] or "",
            tags=list(row[2] or []),
            rating=row[3] or 0,
            screenshot_url=row[4] or "",
            updated_at=row[5],
        )

    def get(self, trade_id: str) -> Optional[JournalAnnotation]:
        conn = psycopg2.connect(self.dsn)
        cur = conn.cursor()
        cur.execute("""
            SELECT trade_id, notes, tags, rating, screenshot_url, updated_at
            FROM annotations WHERE trade_id = %s
        """, (trade_id,))
        row = cur.fetchone()
        cur.close()
        conn.close()
        return self._row_to_annotation(row) if row else None

    def upsert(self, trade_id: str, patch: AnnotationPatch) -> JournalAnnotation:
        updated = apply_patch(self.get(trade_id), trade_id, patch)

        conn = psycopg2.connect(self.dsn)
        cur = conn.cursor()
        cur.execute("""
            INSERT INTO annotations (trade_id, notes, tags, rating, screenshot_url, updated_at)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (trade_id) DO UPDATE SET
                notes = EXCLUDED.notes,
                tags = EXCLUDED.tags,
                rating = EXCLUDED.rating,
                screenshot_url = EXCLUDED.screenshot_url,
                updated_at = EXCLUDED.updated_at
        """, (updated.trade_id, updated.notes, updated.tags, updated.rating,
              updated.screenshot_url, updated.updated_at))
        conn.commit()
        cur.close()
        conn.close()
        return updated

    def list_all(self) -> List[JournalAnnotation]:
        conn = psycopg2.connect(self.dsn)
        cur = conn.cursor()
        cur.execute("""
            SELECT trade_id, notes, tags, rating, screenshot_url, updated_at
            FROM annotations ORDER BY updated_at DESC
        """)
        rows = cur.fetchall()
        cur.close()
        conn.close()
        return [self._row_to_annotation(row) for row in rows]
