from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Iterator, List

import pandas as pd

from .api import Category, CategoryGroup


# YNAB's system-internal group (Inflow: Ready to Assign, credit card payments, ...)
INTERNAL_MASTER_CATEGORY = "Internal Master Category"

TAG_COLUMNS = ["category", "hidden", "deleted"]
FIELD_COLUMNS = ["budgeted", "activity", "balance"]


@dataclass(frozen=True)
class BudgetReading:
    time: datetime
    measurement: str
    category: str
    budgeted: int
    activity: int
    balance: int
    hidden: bool
    deleted: bool


def is_exported_group(group: CategoryGroup) -> bool:
    return group.name != INTERNAL_MASTER_CATEGORY


def iter_exported_categories(groups: Iterable[CategoryGroup]) -> Iterator[Category]:
    """Flatten category groups in order, skipping the internal master group."""
    for group in groups:
        if not is_exported_group(group):
            continue
        yield from group.categories


def map_category(budget_name: str, category: Category) -> BudgetReading:
    """Map one category into a reading stamped with the current UTC time.

    Amounts are YNAB milliunits and are passed through unchanged.
    """
    return BudgetReading(
        time=datetime.now(timezone.utc),
        measurement=budget_name,
        category=category.name,
        budgeted=category.budgeted,
        activity=category.activity,
        balance=category.balance,
        hidden=category.hidden,
        deleted=category.deleted,
    )


def _tag_value(flag: bool) -> str:
    return "true" if flag else "false"


def readings_to_dataframe(readings: List[BudgetReading]) -> pd.DataFrame:
    """Shape readings into the frame the InfluxDB writer consumes.

    - index: UTC DatetimeIndex named ``time`` (emission time)
    - tag columns: category, hidden, deleted (booleans as "true"/"false")
    - field columns: budgeted, activity, balance as int64
    - order of input is preserved
    """
    columns = TAG_COLUMNS + FIELD_COLUMNS
    if not readings:
        empty = pd.DataFrame(columns=columns).astype(
            {"category": str, "hidden": str, "deleted": str, "budgeted": "int64", "activity": "int64", "balance": "int64"}
        )
        empty.index = pd.DatetimeIndex([], tz="UTC", name="time")
        return empty
    df = pd.DataFrame(
        [
            {
                "category": r.category,
                "hidden": _tag_value(r.hidden),
                "deleted": _tag_value(r.deleted),
                "budgeted": r.budgeted,
                "activity": r.activity,
                "balance": r.balance,
            }
            for r in readings
        ],
        columns=columns,
    )
    df = df.astype({"budgeted": "int64", "activity": "int64", "balance": "int64"})
    df.index = pd.DatetimeIndex([pd.Timestamp(r.time) for r in readings], name="time").tz_convert("UTC")
    return df
