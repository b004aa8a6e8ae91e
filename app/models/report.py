import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.models.expense import Expense


class CamelModel(BaseModel):
    """Serializes with camelCase keys, which is what the browser client reads."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CategoryTotal(CamelModel):
    category: str
    total: float


class MonthlyTotal(CamelModel):
    month: str  # YYYY-MM
    total: float


class Report(CamelModel):
    expenses: List[Expense]
    category_totals: List[CategoryTotal]
    monthly_totals: List[MonthlyTotal]
    total_spending: float
    is_over_budget: bool
    budget_limit: float


class Anomaly(CamelModel):
    date: dt.date
    amount: float
    description: Optional[str] = ""


class Predictions(CamelModel):
    next_month: float


class Insights(CamelModel):
    predictions: Predictions
    recommendations: List[str]
    anomalies: List[Anomaly]


class InsightsResponse(CamelModel):
    insights: Insights
