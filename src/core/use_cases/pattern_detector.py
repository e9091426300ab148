from typing import Dict, List

from src.core.entities.pattern import TradePattern
from src.core.entities.trade import Trade
from src.core.use_cases.calendar import day_key, day_start, minutes_between, to_utc
from src.core.use_cases.formatting import format_usd
from src.core.use_cases.summary_aggregator import closed_trades, sort_by_entry

MIN_TRADES = 3
STREAK_LENGTH = 3
OUTSIZED_MULTIPLIER = 2.5
REVENGE_WINDOW_MINUTES = 10
OVERTRADING_PER_DAY = 10
TREND_WINDOW = 20
TREND_THRESHOLD = 0.15


class PatternDetector:
    """
    Rule-based scanner over the closed trade history, oldest first.
    Every rule runs independently over the same sequence; the combined
    result is ordered newest first by detected_at.
    """

    @staticmethod
    def detect(trades: List[Trade]) -> List[TradePattern]:
        ordered = sort_by_entry(closed_trades(trades))
        if len(ordered) < MIN_TRADES:
            return []

        patterns: List[TradePattern] = []
        patterns.extend(PatternDetector._streaks(ordered))
        patterns.extend(PatternDetector._outsized_positions(ordered))
        patterns.extend(PatternDetector._revenge_trades(ordered))
        patterns.extend(PatternDetector._overtrading(ordered))
        patterns.extend(PatternDetector._performance_trend(ordered))

        patterns.sort(key=lambda p: p.detected_at, reverse=True)
        return patterns

    @staticmethod
    def _streak_pattern(run: List[Trade], current: bool) -> List[TradePattern]:
        if len(run) < STREAK_LENGTH:
            return []
        suffix = "(current)" if current else "detected"
        if run[0].is_win:
            kind, severity, word = "winning_streak", "success", "winning"
        else:
            kind, severity, word = "losing_streak", "danger", "losing"
        return [TradePattern(
            type=kind,
            severity=severity,
            message=f"{len(run)}-trade {word} streak {suffix}",
            trade_ids=[t.id for t in run],
            detected_at=to_utc(run[-1].entry_time),
        )]

    @staticmethod
    def _streaks(ordered: List[Trade]) -> List[TradePattern]:
        found = []
        run = [ordered[0]]
        for trade in ordered[1:]:
            if trade.is_win == run[-1].is_win:
                run.append(trade)
                continue
            found.extend(PatternDetector._streak_pattern(run, current=False))
            run = [trade]
        found.extend(PatternDetector._streak_pattern(run, current=True))
        return found

    @staticmethod
    def _outsized_positions(ordered: List[Trade]) -> List[TradePattern]:
        notionals = [t.notional for t in ordered]
        avg = sum(notionals) / len(notionals)
        found = []
        for trade, notional in zip(ordered, notionals):
            if notional > avg * OUTSIZED_MULTIPLIER:
                found.append(TradePattern(
                    type="outsized_position",
                    severity="warning",
                    message=f"Outsized position on {trade.symbol}: {format_usd(notional)} (avg: {format_usd(avg)})",
                    trade_ids=[trade.id],
                    detected_at=to_utc(trade.entry_time),
                ))
        return found

    @staticmethod
    def _revenge_trades(ordered: List[Trade]) -> List[TradePattern]:
        found = []
        for prev, trade in zip(ordered, ordered[1:]):
            if not (prev.pnl < 0 and trade.pnl < 0 and prev.symbol == trade.symbol):
                continue
            gap = minutes_between(trade.entry_time, prev.exit_time or prev.entry_time)
            if 0 <= gap <= REVENGE_WINDOW_MINUTES:
                found.append(TradePattern(
                    type="revenge_trade",
                    severity="danger",
                    message=f"Possible revenge trade on {trade.symbol}: re-entered {gap}m after a loss",
                    trade_ids=[prev.id, trade.id],
                    detected_at=to_utc(trade.entry_time),
                ))
        return found

    @staticmethod
    def _overtrading(ordered: List[Trade]) -> List[TradePattern]:
        by_day: Dict[str, List[str]] = {}
        for t in ordered:
            by_day.setdefault(day_key(t.entry_time), []).append(t.id)

        found = []
        for day, ids in by_day.items():
            if len(ids) > OVERTRADING_PER_DAY:
                found.append(TradePattern(
                    type="overtrading",
                    severity="warning",
                    message=f"{len(ids)} trades on {day}, possible overtrading",
                    trade_ids=ids,
                    detected_at=day_start(day),
                ))
        return found

    @staticmethod
    def _performance_trend(ordered: List[Trade]) -> List[TradePattern]:
        if len(ordered) < TREND_WINDOW * 2:
            return []

        recent = ordered[-TREND_WINDOW:]
        previous = ordered[-2 * TREND_WINDOW:-TREND_WINDOW]
        recent_wr = sum(1 for t in recent if t.is_win) / len(recent)
        prev_wr = sum(1 for t in previous if t.is_win) / len(previous)
        rates = f"{recent_wr * 100:.0f}% (last {TREND_WINDOW}) vs {prev_wr * 100:.0f}% (prior {TREND_WINDOW})"

        # Anchored to the newest trade so repeated runs are identical
        detected_at = to_utc(recent[-1].entry_time)
        recent_ids = [t.id for t in recent]

        if recent_wr > prev_wr + TREND_THRESHOLD:
            return [TradePattern(
                type="improving_performance",
                severity="success",
                message=f"Win rate improving: {rates}",
                trade_ids=recent_ids,
                detected_at=detected_at,
            )]
        if recent_wr < prev_wr - TREND_THRESHOLD:
            return [TradePattern(
                type="declining_performance",
                severity="warning",
                message=f"Win rate declining: {rates}",
                trade_ids=recent_ids,
                detected_at=detected_at,
            )]
        return []


def detect_patterns(trades: List[Trade]) -> List[TradePattern]:
    return PatternDetector.detect(trades)
