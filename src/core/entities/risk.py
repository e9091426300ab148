from typing import Literal

from pydantic import BaseModel

RiskLabel = Literal["Excellent", "Good", "Moderate", "High Risk", "Dangerous"]


class RiskScore(BaseModel):
    """
    Weighted composite risk score. Every score is in [0, 100].
    """
    overall: int
    leverage_score: int
    position_sizing_score: int
    win_rate_score: int
    drawdown_score: int
    consistency_score: int
    label: RiskLabel
    color: str
