"""
Journal Storage Engine — SQLite-backed trade journal
====================================================

Tables:
  trade_entries          — Full TradeEntry records (JSON) + indexed columns
  trading_strategies     — Strategy catalogue
  trade_entry_strategies — Many-to-many junction trade <-> strategy
  risk_profile           — Single-row account risk limits
  daily_risk_snapshots   — One row per trading day (loss-limit state)

Indexes:
  By pair, trade date, trading day, status, result, source, session
"""

from __future__ import annotations
import json
import os
import sqlite3
import threading
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional, List, Dict, Any, Union

from tradejournal.journal.journal_models import (
    TradeEntry, TradingStrategy, RiskProfile, DailyRiskSnapshot,
    TradeStatus, parse_timestamp,
)
from tradejournal.utils.config import get_settings
from tradejournal.utils.exceptions import InvalidInputError, StorageError

logger = logging.getLogger("journal_store")

DateLike = Union[str, date, datetime, None]


def _bound(value: DateLike) -> str:
    try:
        ts = parse_timestamp(value)
    except ValueError as e:
        raise InvalidInputError(f"Invalid date bound: {value}") from e
    return ts.isoformat() if ts else ""


class JournalStore:
    """
    SQLite journal store.
    Thread-safe (one connection per thread), WAL journaling.
    """

    ALLOWED_ORDER = {
        "trade_date DESC", "trade_date ASC", "net_pnl DESC", "net_pnl ASC",
        "created_at DESC", "created_at ASC", "pair ASC",
    }

    def __init__(self, db_path: str = "data/journal.db"):
        self._db_path = db_path
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._local = threading.local()
        self._init_db()
        logger.info("JournalStore initialized: %s", db_path)

    def _get_conn(self) -> sqlite3.Connection:
        if not hasattr(self._local, "conn") or self._local.conn is None:
            self._local.conn = sqlite3.connect(self._db_path, timeout=10)
            self._local.conn.row_factory = sqlite3.Row
            self._local.conn.execute("PRAGMA journal_mode=WAL")
            self._local.conn.execute("PRAGMA synchronous=NORMAL")
        return self._local.conn

    def close(self):
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            conn.close()
            self._local.conn = None

    def _init_db(self):
        conn = self._get_conn()
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS trade_entries (
                id            TEXT PRIMARY KEY,
                pair          TEXT DEFAULT '',
                direction     TEXT DEFAULT '',
                status        TEXT DEFAULT 'closed',
                result        TEXT DEFAULT '',
                source        TEXT DEFAULT 'manual',
                session       TEXT DEFAULT '',
                trade_date    TEXT DEFAULT '',
                trade_day     TEXT DEFAULT '',
                net_pnl       REAL DEFAULT 0,
                fees          REAL DEFAULT 0,
                created_at    TEXT DEFAULT '',
                updated_at    TEXT DEFAULT '',
                data          TEXT DEFAULT '{}'
            );

            CREATE TABLE IF NOT EXISTS trading_strategies (
                id          TEXT PRIMARY KEY,
                name        TEXT DEFAULT '',
                is_active   INTEGER DEFAULT 1,
                created_at  TEXT DEFAULT '',
                data        TEXT DEFAULT '{}'
            );

            CREATE TABLE IF NOT EXISTS trade_entry_strategies (
                trade_entry_id TEXT NOT NULL,
                strategy_id    TEXT NOT NULL,
                PRIMARY KEY (trade_entry_id, strategy_id)
            );

            CREATE TABLE IF NOT EXISTS risk_profile (
                profile_id  INTEGER PRIMARY KEY CHECK (profile_id = 1),
                data        TEXT DEFAULT '{}'
            );

            CREATE TABLE IF NOT EXISTS daily_risk_snapshots (
                snapshot_date   TEXT PRIMARY KEY,
                starting_balance REAL DEFAULT 0,
                current_pnl     REAL DEFAULT 0,
                trading_allowed INTEGER DEFAULT 1,
                data            TEXT DEFAULT '{}'
            );

            CREATE INDEX IF NOT EXISTS idx_te_pair ON trade_entries(pair);
            CREATE INDEX IF NOT EXISTS idx_te_trade_date ON trade_entries(trade_date);
            CREATE INDEX IF NOT EXISTS idx_te_trade_day ON trade_entries(trade_day);
            CREATE INDEX IF NOT EXISTS idx_te_status ON trade_entries(status);
            CREATE INDEX IF NOT EXISTS idx_te_result ON trade_entries(result);
            CREATE INDEX IF NOT EXISTS idx_te_source ON trade_entries(source);
            CREATE INDEX IF NOT EXISTS idx_te_session ON trade_entries(session);
            CREATE INDEX IF NOT EXISTS idx_tes_strategy ON trade_entry_strategies(strategy_id);
        """)
        conn.commit()

    # ─── TRADES ─────────────────────────────────────────────────

    def record_trade(self, entry: TradeEntry) -> str:
        """Insert or update a trade, rewriting its strategy links."""
        conn = self._get_conn()
        entry.updated_at = datetime.now(timezone.utc).isoformat()
        d = entry.to_dict()
        ts = entry.trade_datetime
        if ts is None:
            raise StorageError(f"Trade {entry.id} has no trade_date")
        try:
            conn.execute("""
                INSERT OR REPLACE INTO trade_entries
                (id, pair, direction, status, result, source, session,
                 trade_date, trade_day, net_pnl, fees, created_at, updated_at, data)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                entry.id, entry.pair, entry.direction, entry.status,
                entry.result or "", entry.source, entry.session or "",
                ts.isoformat(), ts.date().isoformat(),
                entry.net_pnl, entry.fees or 0.0,
                entry.created_at, entry.updated_at,
                json.dumps(d, default=str),
            ))
            conn.execute("DELETE FROM trade_entry_strategies WHERE trade_entry_id = ?", (entry.id,))
            for strategy in entry.strategies:
                self._upsert_strategy(conn, strategy)
                conn.execute(
                    "INSERT OR IGNORE INTO trade_entry_strategies (trade_entry_id, strategy_id) VALUES (?, ?)",
                    (entry.id, strategy.id),
                )
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(f"Failed to record trade {entry.id}: {e}") from e
        return entry.id

    def get_trade(self, trade_id: str) -> Optional[TradeEntry]:
        conn = self._get_conn()
        row = conn.execute("SELECT data FROM trade_entries WHERE id = ?",
                           (trade_id,)).fetchone()
        if row:
            return TradeEntry.from_dict(json.loads(row["data"]))
        return None

    def delete_trade(self, trade_id: str) -> bool:
        conn = self._get_conn()
        cur = conn.execute("DELETE FROM trade_entries WHERE id = ?", (trade_id,))
        conn.execute("DELETE FROM trade_entry_strategies WHERE trade_entry_id = ?", (trade_id,))
        conn.commit()
        return cur.rowcount > 0

    def _filters(
        self,
        pair: str = "",
        direction: str = "",
        status: str = "",
        result: str = "",
        source: str = "",
        session: str = "",
        strategy_id: str = "",
        from_date: DateLike = None,
        to_date: DateLike = None,
    ):
        conditions: List[str] = []
        params: list = []
        if pair:
            conditions.append("pair = ?"); params.append(pair)
        if direction:
            conditions.append("direction = ?"); params.append(direction)
        if status:
            conditions.append("status = ?"); params.append(status)
        if result:
            conditions.append("result = ?"); params.append(result)
        if source:
            conditions.append("source = ?"); params.append(source)
        if session:
            conditions.append("session = ?"); params.append(session)
        if strategy_id:
            conditions.append(
                "id IN (SELECT trade_entry_id FROM trade_entry_strategies WHERE strategy_id = ?)"
            )
            params.append(strategy_id)
        if from_date:
            conditions.append("trade_date >= ?"); params.append(_bound(from_date))
        if to_date:
            conditions.append("trade_date <= ?"); params.append(_bound(to_date))
        where = " AND ".join(conditions) if conditions else "1=1"
        return where, params

    def query_trades(
        self,
        pair: str = "",
        direction: str = "",
        status: str = "",
        result: str = "",
        source: str = "",
        session: str = "",
        strategy_id: str = "",
        from_date: DateLike = None,
        to_date: DateLike = None,
        limit: int = 500,
        offset: int = 0,
        order_by: str = "trade_date DESC",
    ) -> List[TradeEntry]:
        """Filtering, sorting, pagination."""
        conn = self._get_conn()
        where, params = self._filters(pair, direction, status, result, source,
                                      session, strategy_id, from_date, to_date)
        if order_by not in self.ALLOWED_ORDER:
            order_by = "trade_date DESC"

        sql = f"SELECT data FROM trade_entries WHERE {where} ORDER BY {order_by} LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        rows = conn.execute(sql, params).fetchall()
        entries = []
        for row in rows:
            try:
                entries.append(TradeEntry.from_dict(json.loads(row["data"])))
            except (ValueError, TypeError) as e:
                logger.error("Failed to parse trade entry: %s", e)
        return entries

    def count_trades(self, **filters) -> int:
        conn = self._get_conn()
        where, params = self._filters(**filters)
        row = conn.execute(f"SELECT COUNT(*) as cnt FROM trade_entries WHERE {where}", params).fetchone()
        return row["cnt"] if row else 0

    def get_pairs(self) -> List[str]:
        conn = self._get_conn()
        rows = conn.execute("SELECT DISTINCT pair FROM trade_entries ORDER BY pair").fetchall()
        return [r["pair"] for r in rows if r["pair"]]

    def _closed_since(self, days: int, now: Optional[datetime], pair: str = "",
                      source: str = "", strategy_id: str = ""):
        now = parse_timestamp(now) if now else datetime.now(timezone.utc)
        where, params = self._filters(pair=pair, source=source, strategy_id=strategy_id,
                                      status=TradeStatus.CLOSED.value,
                                      from_date=now - timedelta(days=days))
        return where, params

    def get_pnl_by_date(self, days: int = 30, now: Optional[datetime] = None,
                        pair: str = "", source: str = "", strategy_id: str = "") -> List[Dict]:
        """Daily P&L of closed trades over the last N days."""
        conn = self._get_conn()
        where, params = self._closed_since(days, now, pair, source, strategy_id)
        rows = conn.execute(f"""
            SELECT trade_day,
                   SUM(net_pnl) as daily_pnl,
                   COUNT(*) as trade_count,
                   SUM(CASE WHEN net_pnl > 0 THEN 1 ELSE 0 END) as wins
            FROM trade_entries
            WHERE {where}
            GROUP BY trade_day
            ORDER BY trade_day
        """, params).fetchall()
        return [{"date": r["trade_day"], "pnl": r["daily_pnl"],
                 "trades": r["trade_count"], "wins": r["wins"]} for r in rows]

    def get_symbol_breakdown(self, days: int = 1, now: Optional[datetime] = None,
                             pair: str = "", source: str = "", strategy_id: str = "") -> List[Dict]:
        """Per-pair gross P&L, fees and net over the last N days, largest |net| first."""
        conn = self._get_conn()
        where, params = self._closed_since(days, now, pair, source, strategy_id)
        rows = conn.execute(f"""
            SELECT pair,
                   SUM(net_pnl) as pnl,
                   SUM(fees) as fees,
                   COUNT(*) as trades
            FROM trade_entries
            WHERE {where}
            GROUP BY pair
        """, params).fetchall()
        result = []
        for r in rows:
            pnl = r["pnl"] or 0.0
            fees = r["fees"] or 0.0
            result.append({
                "symbol": r["pair"],
                "pnl": round(pnl, 2),
                "fees": round(fees, 2),
                "net": round(pnl - fees, 2),
                "trades": r["trades"],
            })
        result.sort(key=lambda x: abs(x["net"]), reverse=True)
        return result

    # ─── STRATEGIES ─────────────────────────────────────────────

    @staticmethod
    def _upsert_strategy(conn: sqlite3.Connection, strategy: TradingStrategy):
        conn.execute("""
            INSERT OR REPLACE INTO trading_strategies (id, name, is_active, created_at, data)
            VALUES (?, ?, ?, ?, ?)
        """, (strategy.id, strategy.name, 1 if strategy.is_active else 0,
              strategy.created_at, json.dumps(strategy.to_dict(), default=str)))

    def record_strategy(self, strategy: TradingStrategy) -> str:
        conn = self._get_conn()
        self._upsert_strategy(conn, strategy)
        conn.commit()
        return strategy.id

    def get_strategy(self, strategy_id: str) -> Optional[TradingStrategy]:
        conn = self._get_conn()
        row = conn.execute("SELECT data FROM trading_strategies WHERE id = ?",
                           (strategy_id,)).fetchone()
        if row:
            return TradingStrategy.from_dict(json.loads(row["data"]))
        return None

    def get_strategies(self, active_only: bool = False) -> List[TradingStrategy]:
        conn = self._get_conn()
        sql = "SELECT data FROM trading_strategies"
        if active_only:
            sql += " WHERE is_active = 1"
        rows = conn.execute(sql + " ORDER BY name").fetchall()
        return [TradingStrategy.from_dict(json.loads(r["data"])) for r in rows]

    # ─── RISK STATE ─────────────────────────────────────────────

    def get_risk_profile(self) -> RiskProfile:
        conn = self._get_conn()
        row = conn.execute("SELECT data FROM risk_profile WHERE profile_id = 1").fetchone()
        if row:
            return RiskProfile.from_dict(json.loads(row["data"]))
        s = get_settings()
        return RiskProfile(
            risk_per_trade_percent=s.risk_per_trade_percent,
            max_daily_loss_percent=s.max_daily_loss_percent,
            max_position_size_percent=s.max_position_size_percent,
            max_concurrent_positions=s.max_concurrent_positions,
        )

    def save_risk_profile(self, profile: RiskProfile):
        conn = self._get_conn()
        conn.execute("INSERT OR REPLACE INTO risk_profile (profile_id, data) VALUES (1, ?)",
                     (json.dumps(profile.to_dict()),))
        conn.commit()

    def get_daily_snapshot(self, snapshot_date: Union[str, date]) -> Optional[DailyRiskSnapshot]:
        conn = self._get_conn()
        key = snapshot_date.isoformat() if isinstance(snapshot_date, date) else snapshot_date
        row = conn.execute("SELECT data FROM daily_risk_snapshots WHERE snapshot_date = ?",
                           (key,)).fetchone()
        if row:
            return DailyRiskSnapshot.from_dict(json.loads(row["data"]))
        return None

    def save_daily_snapshot(self, snapshot: DailyRiskSnapshot):
        conn = self._get_conn()
        conn.execute("""
            INSERT OR REPLACE INTO daily_risk_snapshots
            (snapshot_date, starting_balance, current_pnl, trading_allowed, data)
            VALUES (?, ?, ?, ?, ?)
        """, (snapshot.snapshot_date, snapshot.starting_balance, snapshot.current_pnl,
              1 if snapshot.trading_allowed else 0, json.dumps(snapshot.to_dict())))
        conn.commit()

    def get_stats(self) -> Dict[str, Any]:
        conn = self._get_conn()
        total = conn.execute("SELECT COUNT(*) as c FROM trade_entries").fetchone()["c"]
        closed = conn.execute("SELECT COUNT(*) as c FROM trade_entries WHERE status = ?",
                              (TradeStatus.CLOSED.value,)).fetchone()["c"]
        strategies = conn.execute("SELECT COUNT(*) as c FROM trading_strategies").fetchone()["c"]
        return {
            "total_trades": total,
            "closed_trades": closed,
            "open_trades": total - closed,
            "strategies": strategies,
            "db_path": self._db_path,
        }
