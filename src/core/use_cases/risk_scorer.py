import math
from typing import List

from src.core.entities.analytics import AnalyticsSummary
from src.core.entities.risk import RiskScore
from src.core.entities.trade import Trade
from src.core.use_cases.summary_aggregator import closed_trades
from src.core.use_cases.time_buckets import compute_daily_pnl

WEIGHTS = {
    "leverage": 0.20,
    "sizing": 0.15,
    "win_rate": 0.25,
    "drawdown": 0.25,
    "consistency": 0.15,
}

# (min overall, label, color), checked top-down
LABEL_THRESHOLDS = [
    (80, "Excellent", "#22c55e"),
    (65, "Good", "#84cc16"),
    (45, "Moderate", "#f59e0b"),
    (25, "High Risk", "#f97316"),
    (0, "Dangerous", "#ef4444"),
]

# Daily pnl CV at or above this scores zero consistency
MAX_DAILY_CV = 5.0


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _population_cv(values: List[float]) -> float:
    mean = sum(values) / len(values)
    stddev = math.sqrt(sum((v - mean) ** 2 for v in values) / len(values))
    return stddev / mean if mean > 0 else 0.0


def label_for(overall: int):
    for threshold, label, color in LABEL_THRESHOLDS:
        if overall >= threshold:
            return label, color
    return LABEL_THRESHOLDS[-1][1], LABEL_THRESHOLDS[-1][2]


def compute_risk_score(trades: List[Trade], summary: AnalyticsSummary) -> RiskScore:
    """
    Composite risk score from leverage, sizing dispersion, win rate,
    drawdown and day-to-day pnl consistency. Higher is safer.
    """
    closed = closed_trades(trades)
    if not closed:
        return RiskScore(
            overall=50,
            leverage_score=50,
            position_sizing_score=50,
            win_rate_score=50,
            drawdown_score=50,
            consistency_score=50,
            label="Moderate",
            color="#f59e0b",
        )

    # 100 at 1x, 0 at 10x and above
    avg_leverage = sum(t.leverage for t in closed) / len(closed)
    leverage_score = _clamp(((10 - avg_leverage) / 9) * 100)

    sizing_cv = _population_cv([t.size * t.entry_price for t in closed])
    sizing_score = _clamp((1 - sizing_cv) * 100)

    win_rate_score = min(100.0, summary.win_rate * 1.2)

    drawdown_score = _clamp(100 - summary.max_drawdown_percent * 2)

    daily = [d.pnl for d in compute_daily_pnl(closed)]
    daily_cv = MAX_DAILY_CV
    if daily:
        mean = sum(daily) / len(daily)
        stddev = math.sqrt(sum((v - mean) ** 2 for v in daily) / len(daily))
        if abs(mean) > 0:
            daily_cv = stddev / abs(mean)
    consistency_score = _clamp((1 - min(daily_cv / MAX_DAILY_CV, 1)) * 100)

    overall = _round_half_up(
        leverage_score * WEIGHTS["leverage"]
        + sizing_score * WEIGHTS["sizing"]
        + win_rate_score * WEIGHTS["win_rate"]
        + drawdown_score * WEIGHTS["drawdown"]
        + consistency_score * WEIGHTS["consistency"]
    )
    label, color = label_for(overall)

    return RiskScore(
        overall=overall,
        leverage_score=_round_half_up(leverage_score),
        position_sizing_score=_round_half_up(sizing_score),
        win_rate_score=_round_half_up(win_rate_score),
        drawdown_score=_round_half_up(drawdown_score),
        consistency_score=_round_half_up(consistency_score),
        label=label,
        color=color,
    )
