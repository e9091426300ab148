"""
Tests for behavioural pattern detection.
"""
from datetime import datetime, timedelta, timezone

from src.core.use_cases.pattern_detector import PatternDetector, detect_patterns
from tests.conftest import BASE_TIME


def _of_type(patterns, kind):
    return [p for p in patterns if p.type == kind]


def test_fewer_than_three_closed_trades_yield_nothing(trades_from_pnls, make_trade):
    assert detect_patterns([]) == []
    assert detect_patterns(trades_from_pnls([-5, -5])) == []
    # open trades do not count towards the minimum
    trades = trades_from_pnls([-5, -5]) + [make_trade(0, idx=5, status="open", exit_time=None)]
    assert detect_patterns(trades) == []


def test_current_winning_streak(trades_from_pnls):
    patterns = detect_patterns(trades_from_pnls([10, 20, 30]))
    streaks = _of_type(patterns, "winning_streak")

    assert len(streaks) == 1
    assert streaks[0].message == "3-trade winning streak (current)"
    assert streaks[0].severity == "success"
    assert streaks[0].trade_ids == ["t0", "t1", "t2"]


def test_broken_losing_streak_is_reported_as_detected(trades_from_pnls):
    patterns = detect_patterns(trades_from_pnls([-1, -2, 0, 5]))
    streaks = _of_type(patterns, "losing_streak")

    assert len(streaks) == 1
    assert streaks[0].message == "3-trade losing streak detected"
    assert streaks[0].severity == "danger"
    assert _of_type(patterns, "winning_streak") == []


def test_outsized_position(make_trade):
    trades = [make_trade(1, idx=i) for i in range(4)]
    trades.append(make_trade(-1, idx=4, size=10.0))
    outsized = _of_type(detect_patterns(trades), "outsized_position")

    assert len(outsized) == 1
    assert outsized[0].trade_ids == ["t4"]
    assert outsized[0].message == "Outsized position on SOL-PERP: $1.00K (avg: $280.00)"


def test_revenge_trade_after_quick_reentry(make_trade):
    first_entry = BASE_TIME
    first_exit = first_entry + timedelta(minutes=20)
    trades = [
        make_trade(5, idx=0, entry_time=first_entry - timedelta(hours=2)),
        make_trade(-10, idx=1, entry_time=first_entry, exit_time=first_exit),
        make_trade(-15, idx=2, entry_time=first_exit + timedelta(minutes=5)),
    ]
    revenge = _of_type(detect_patterns(trades), "revenge_trade")

    assert len(revenge) == 1
    assert revenge[0].trade_ids == ["t1", "t2"]
    assert "5m" in revenge[0].message


def test_no_revenge_trade_across_symbols_or_after_window(make_trade):
    exit_time = BASE_TIME + timedelta(minutes=20)
    trades = [
        make_trade(-10, idx=0, entry_time=BASE_TIME, exit_time=exit_time),
        make_trade(-15, idx=1, entry_time=exit_time + timedelta(minutes=5), symbol="WETH-PERP"),
        make_trade(-15, idx=2, entry_time=exit_time + timedelta(hours=3), symbol="WETH-PERP"),
    ]
    assert _of_type(detect_patterns(trades), "revenge_trade") == []


def test_overtrading_detected_at_midnight_utc(make_trade):
    day = datetime(2025, 1, 8, 1, 0, tzinfo=timezone.utc)
    trades = [
        make_trade(1 if i % 2 else -1, idx=i, entry_time=day + timedelta(minutes=40 * i))
        for i in range(11)
    ]
    overtrading = _of_type(detect_patterns(trades), "overtrading")

    assert len(overtrading) == 1
    assert len(overtrading[0].trade_ids) == 11
    assert overtrading[0].detected_at == datetime(2025, 1, 8, tzinfo=timezone.utc)


def test_ten_trades_a_day_is_not_overtrading(make_trade):
    trades = [make_trade(1 if i % 2 else -1, idx=i) for i in range(10)]
    assert _of_type(detect_patterns(trades), "overtrading") == []


def test_improving_performance_trend(make_trade):
    trades = [
        make_trade(-1 if i < 20 else 1, idx=i, entry_time=BASE_TIME + timedelta(days=i))
        for i in range(40)
    ]
    patterns = detect_patterns(trades)
    trend = _of_type(patterns, "improving_performance")

    assert len(trend) == 1
    assert trend[0].trade_ids == [f"t{i}" for i in range(20, 40)]
    assert trend[0].detected_at == trades[-1].entry_time
    assert _of_type(patterns, "declining_performance") == []


def test_declining_performance_trend(make_trade):
    trades = [
        make_trade(1 if i < 20 else -1, idx=i, entry_time=BASE_TIME + timedelta(days=i))
        for i in range(40)
    ]
    assert len(_of_type(detect_patterns(trades), "declining_performance")) == 1


def test_result_is_sorted_newest_first_and_deterministic(make_trade):
    trades = [
        make_trade(-1 if i < 20 else 1, idx=i, entry_time=BASE_TIME + timedelta(days=i), size=8.0 if i == 3 else 1.0)
        for i in range(40)
    ]
    first = PatternDetector.detect(trades)
    second = PatternDetector.detect(list(reversed(trades)))

    assert first == second
    stamps = [p.detected_at for p in first]
    assert stamps == sorted(stamps, reverse=True)


def test_streak_broken_by_a_loss_is_reported_once(trades_from_pnls):
    patterns = detect_patterns(trades_from_pnls([10, 20, 30, -5]))
    streaks = _of_type(patterns, "winning_streak")

    assert len(streaks) == 1
    assert streaks[0].message == "3-trade winning streak detected"
    assert streaks[0].trade_ids == ["t0", "t1", "t2"]
