#!/usr/bin/env python3
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
import sys


def _proj_root() -> Path:
    return Path(__file__).resolve().parents[2]


if str(_proj_root()) not in sys.path:
    sys.path.append(str(_proj_root()))

from budget_data_feed.ynab.api import Category, CategoryGroup
from budget_data_feed.ynab.mapping import (
    INTERNAL_MASTER_CATEGORY,
    iter_exported_categories,
    map_category,
    readings_to_dataframe,
)


def _cat(name: str, budgeted: int = 0, activity: int = 0, balance: int = 0, hidden: bool = False, deleted: bool = False) -> Category:
    return Category(id=f"id-{name}", name=name, budgeted=budgeted, activity=activity, balance=balance, hidden=hidden, deleted=deleted)


def _group(name: str, *cats: Category) -> CategoryGroup:
    return CategoryGroup(id=f"g-{name}", name=name, hidden=False, deleted=False, categories=tuple(cats))


def test_map_category_fields_and_time() -> None:
    cat = _cat("Rent", budgeted=150000, activity=-150000, balance=0, hidden=True, deleted=False)
    before = datetime.now(timezone.utc)
    r = map_category("Household", cat)
    after = datetime.now(timezone.utc)
    assert r.measurement == "Household"
    assert (r.category, r.budgeted, r.activity, r.balance) == ("Rent", 150000, -150000, 0)
    assert r.hidden is True and r.deleted is False
    assert before <= r.time <= after + timedelta(milliseconds=1)
    assert r.time.tzinfo is not None


def test_internal_master_category_excluded() -> None:
    groups = [
        _group(INTERNAL_MASTER_CATEGORY, _cat("Inflow: Ready to Assign", balance=999)),
        _group("Everyday", _cat("Groceries"), _cat("Fuel")),
        _group("Bills", _cat("Rent")),
    ]
    names = [c.name for c in iter_exported_categories(groups)]
    assert names == ["Groceries", "Fuel", "Rent"]
    assert list(iter_exported_categories([groups[0]])) == []


def test_readings_to_dataframe() -> None:
    readings = [
        map_category("Household", _cat("Groceries", 50000, -12000, 38000)),
        map_category("Household", _cat("Old", 0, 0, 0, hidden=True, deleted=True)),
    ]
    df = readings_to_dataframe(readings)
    assert list(df.columns) == ["category", "hidden", "deleted", "budgeted", "activity", "balance"]
    assert list(df["category"]) == ["Groceries", "Old"]
    assert list(df["hidden"]) == ["false", "true"]
    assert list(df["deleted"]) == ["false", "true"]
    assert df["budgeted"].tolist() == [50000, 0]
    assert df["activity"].tolist() == [-12000, 0]
    assert str(df["balance"].dtype) == "int64"
    assert str(df.index.tz) == "UTC"

    empty = readings_to_dataframe([])
    assert empty.empty
    assert list(empty.columns) == list(df.columns)


def main() -> None:
    test_map_category_fields_and_time()
    test_internal_master_category_excluded()
    test_readings_to_dataframe()
    print('mapping tests OK')


if __name__ == '__main__':
    main()
