"""Result models — what the scoring endpoint returns.

``SurveyResult`` is an immutable snapshot consumed only for the summary
card and for biasing the free-chat fallback.  ``SubmitAck`` is the
continuation signal returned after each answer.
"""

import math
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class SurveyResult(BaseModel):
    """Computed repayment plan estimate for one session.

    Amounts are in won; ``repayment_rate`` is a percentage.
    """

    model_config = ConfigDict(frozen=True)

    repayment_rate: float
    monthly_repayment_total: int
    total_repayment: int
    total_debt: int
    secured_debt: int = 0
    unsecured_debt: int
    monthly_income: int = 0
    living_expenses: int = 0
    monthly_available: int = 0

    @field_validator(
        "monthly_repayment_total", "total_repayment", "total_debt", "secured_debt",
        "unsecured_debt", "monthly_income", "living_expenses", "monthly_available",
        mode="before",
    )
    @classmethod
    def _round_to_won(cls, v: Any) -> Any:
        # Scoring may return fractional won; amounts are whole won
        if isinstance(v, float) and math.isfinite(v):
            return round(v)
        return v

    @property
    def forgiveness_estimate(self) -> int:
        """Unsecured debt left unpaid after the plan.

        Not clamped: a negative value is shown as-is.
        """
        return self.unsecured_debt - self.total_repayment


class SubmitAck(BaseModel):
    """Service response to a submitted answer."""

    is_complete: bool = False
    next_step_id: Optional[str] = None
