"""
Display helpers for currency, percentages and durations.
"""
import math


def format_usd(value: float) -> str:
    sign = "" if value >= 0 else "-"
    magnitude = abs(value)
    if magnitude >= 1_000_000:
        return f"{sign}${magnitude / 1_000_000:.2f}M"
    if magnitude >= 1_000:
        return f"{sign}${magnitude / 1_000:.2f}K"
    return f"{sign}${magnitude:.2f}"


def format_percent(value: float) -> str:
    sign = "+" if value >= 0 else ""
    return f"{sign}{value:.2f}%"


def format_duration(minutes: float) -> str:
    if minutes < 60:
        return f"{int(math.floor(minutes + 0.5))}m"
    if minutes < 1440:
        return f"{minutes / 60:.1f}h"
    return f"{minutes / 1440:.1f}d"
