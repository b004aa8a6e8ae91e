import datetime as dt
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ExpenseCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    date: dt.date
    category: str = Field(..., min_length=1, max_length=100)
    amount: float = Field(..., gt=0)
    description: Optional[str] = ""


class Expense(BaseModel):
    """A stored expense record. The id is assigned by the store."""

    id: Union[int, str]
    date: dt.date
    category: str
    amount: float
    description: Optional[str] = ""

    @property
    def month_key(self) -> str:
        return f"{self.date.year:04d}-{self.date.month:02d}"
