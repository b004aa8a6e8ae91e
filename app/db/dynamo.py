import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from app.db.base import ExpenseStore, StoreError
from app.models.expense import Expense, ExpenseCreate
from app.models.report import CategoryTotal, MonthlyTotal
from app.utils import aggregator

logger = logging.getLogger(__name__)


class DynamoExpenseStore(ExpenseStore):
    """
    Expenses in a single DynamoDB table.

    The table must exist already, with partition key ``owner`` (S) and sort
    key ``sort_key`` (S). Sort keys start with the ISO date so a month is a
    ``begins_with`` query and newest-first is a reverse scan of the index.
    """

    backend = "dynamodb"

    def __init__(self, table_name: str, region: str, partition: str = "default", resource=None) -> None:
        dynamodb = resource or boto3.resource("dynamodb", region_name=region)
        self._table = dynamodb.Table(table_name)
        self._partition = partition

    def _pages(self, operation: str, **kwargs) -> Iterator[Dict[str, Any]]:
        """Yield every page of a query on this store's partition."""
        try:
            while True:
                response = self._table.query(**kwargs)
                yield response
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    return
                kwargs["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as e:
            logger.error(f"{operation} failed: {_error_message(e)}")
            raise StoreError(f"{operation} failed") from e

    def _query(self, operation: str, prefix: Optional[str] = None, newest_first: bool = True) -> List[Dict[str, Any]]:
        condition = Key("owner").eq(self._partition)
        if prefix:
            condition = condition & Key("sort_key").begins_with(prefix)

        items: List[Dict[str, Any]] = []
        for page in self._pages(operation, KeyConditionExpression=condition, ScanIndexForward=not newest_first):
            items.extend(page.get("Items", []))
        return items

    def insert(self, expense: ExpenseCreate) -> Expense:
        expense_id = uuid.uuid4().hex
        created_at = datetime.utcnow().isoformat()
        item = {
            "owner": self._partition,
            "sort_key": f"{expense.date.isoformat()}#{created_at}#{expense_id[:8]}",
            "id": expense_id,
            "date": expense.date.isoformat(),
            "category": expense.category,
            "amount": expense.amount,
            "description": expense.description or "",
            "created_at": created_at,
        }
        try:
            self._table.put_item(Item=_convert_for_dynamo(item))
        except (ClientError, BotoCoreError) as e:
            logger.error(f"put_expense failed: {_error_message(e)}")
            raise StoreError("insert failed") from e
        return _to_expense(item)

    def list_all(self) -> List[Expense]:
        return [_to_expense(item) for item in self._query("list_all")]

    def query_by_month(self, year: int, month: int) -> List[Expense]:
        prefix = aggregator.month_key(year, month)
        return [_to_expense(item) for item in self._query("query_by_month", prefix)]

    def group_sum_by_category(self, year: int, month: int) -> List[CategoryTotal]:
        prefix = aggregator.month_key(year, month)
        # oldest first, so ties keep the category that was recorded first
        items = self._query("group_sum_by_category", prefix, newest_first=False)
        return aggregator.category_totals(_to_expense(item) for item in items)

    def group_sum_by_month(self, limit: int = aggregator.MONTHS_OF_HISTORY) -> List[MonthlyTotal]:
        items = self._query("group_sum_by_month")
        return aggregator.monthly_totals((_to_expense(item) for item in items), limit=limit)

    def count(self) -> int:
        pages = self._pages("count", KeyConditionExpression=Key("owner").eq(self._partition), Select="COUNT")
        return sum(int(page.get("Count", 0)) for page in pages)


def _error_message(error: Exception) -> str:
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Message", str(error))
    return str(error)


def _to_expense(item: Dict[str, Any]) -> Expense:
    item = _from_dynamo(item)
    return Expense(
        id=item["id"],
        date=item["date"],
        category=item["category"],
        amount=item["amount"],
        description=item.get("description", ""),
    )


def _convert_for_dynamo(obj: Any):
    """
    Recursively convert floats to Decimal for DynamoDB compatibility.
    """
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _convert_for_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_convert_for_dynamo(v) for v in obj]
    return obj


def _from_dynamo(obj: Any):
    """
    Recursively convert Decimal instances back to native Python numeric types.
    """
    if isinstance(obj, list):
        return [_from_dynamo(item) for item in obj]
    if isinstance(obj, dict):
        return {k: _from_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    return obj
