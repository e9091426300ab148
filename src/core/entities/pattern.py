from datetime import datetime
from typing import List, Literal

from pydantic import BaseModel

PatternType = Literal[
    "winning_streak",
    "losing_streak",
    "outsized_position",
    "revenge_trade",
    "overtrading",
    "improving_performance",
    "declining_performance",
]
Severity = Literal["info", "warning", "danger", "success"]


class TradePattern(BaseModel):
    """
    One detected behavioural event over the trade history.
    """
    type: PatternType
    severity: Severity
    message: str
    trade_ids: List[str]
    detected_at: datetime
