from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen
import http.client
import json

from .errors import BootstrapFailed


YNAB_API = "https://api.ynab.com/v1"


@dataclass(frozen=True)
class Budget:
    id: str
    name: str


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    budgeted: int
    activity: int
    balance: int
    hidden: bool
    deleted: bool


@dataclass(frozen=True)
class CategoryGroup:
    id: str
    name: str
    hidden: bool
    deleted: bool
    categories: Tuple[Category, ...]


@dataclass(frozen=True)
class Delta:
    """Categories changed since the supplied cursor, plus the next cursor."""

    groups: Tuple[CategoryGroup, ...]
    server_knowledge: int


@dataclass(frozen=True)
class Unavailable:
    """Error response, transport failure or unexpected payload shape."""

    detail: str
    status: Optional[int] = None


DeltaResult = Union[Delta, Unavailable]


def _error_detail(payload: Any) -> str:
    # YNAB error body: {"error": {"id": "404.2", "name": "resource_not_found", "detail": "..."}}
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        err = payload["error"]
        return f"{err.get('id', '?')} {err.get('name', 'error')}: {err.get('detail', '')}".strip()
    return "unexpected response shape"


def _parse_category(row: dict) -> Category:
    return Category(
        id=str(row["id"]),
        name=str(row["name"]),
        budgeted=int(row["budgeted"]),
        activity=int(row["activity"]),
        balance=int(row["balance"]),
        hidden=bool(row["hidden"]),
        deleted=bool(row["deleted"]),
    )


def _parse_group(row: dict) -> CategoryGroup:
    return CategoryGroup(
        id=str(row["id"]),
        name=str(row["name"]),
        hidden=bool(row.get("hidden", False)),
        deleted=bool(row.get("deleted", False)),
        categories=tuple(_parse_category(c) for c in row.get("categories") or []),
    )


def parse_budget(payload: Any) -> Budget:
    """Extract the budget identity from a ``GET /budgets/{id}`` payload.

    Raises BootstrapFailed when the payload carries an error or lacks id/name.
    """
    try:
        budget = payload["data"]["budget"]
        return Budget(id=str(budget["id"]), name=str(budget["name"]))
    except (KeyError, TypeError) as e:
        raise BootstrapFailed(_error_detail(payload)) from e


def parse_category_list(payload: Any) -> DeltaResult:
    """Classify a ``GET /budgets/{id}/categories`` payload.

    - Delta: ``data.category_groups`` is a list (possibly empty) and
      ``data.server_knowledge`` is an integer.
    - Unavailable: anything else, including YNAB error bodies.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
        return Unavailable(_error_detail(payload))
    data = payload["data"]
    groups_raw = data.get("category_groups")
    knowledge = data.get("server_knowledge")
    if not isinstance(groups_raw, list) or isinstance(knowledge, bool) or not isinstance(knowledge, int):
        return Unavailable("category list missing category_groups or server_knowledge")
    try:
        groups = tuple(_parse_group(g) for g in groups_raw)
    except (KeyError, TypeError, ValueError) as e:
        return Unavailable(f"malformed category record: {e!r}")
    return Delta(groups=groups, server_knowledge=knowledge)


@dataclass(frozen=True)
class YnabClient:
    token: str
    base_url: str = YNAB_API
    timeout: float = 30.0

    def _build_url(self, path: str, params: Optional[dict] = None) -> str:
        url = f"{self.base_url}{path}"
        if params:
            url = f"{url}?{urlencode(params)}"
        return url

    def _get_json(self, path: str, params: Optional[dict] = None) -> Tuple[int, Any]:
        """GET a YNAB endpoint; returns (status, decoded body) for HTTP error responses too.

        Transport errors (URLError, timeouts, truncated responses) propagate to the caller.
        """
        req = Request(
            self._build_url(path, params),
            headers={
                "Authorization": f"Bearer {self.token}",
                "Accept": "application/json",
                "User-Agent": "budget-data-feed/1.0",
            },
        )
        try:
            with urlopen(req, timeout=self.timeout) as resp:
                return resp.status, json.loads(resp.read())
        except HTTPError as e:
            body = e.read()
            try:
                payload = json.loads(body) if body else None
            except ValueError:
                payload = None
            return e.code, payload

    def resolve_budget(self, budget_id: str) -> Budget:
        """Resolve budget id and name once, before the sync loop starts."""
        try:
            status, payload = self._get_json(f"/budgets/{quote(budget_id, safe='')}")
        except (URLError, OSError, http.client.HTTPException, ValueError) as e:
            raise BootstrapFailed(f"could not reach YNAB: {e}") from e
        if status != 200:
            raise BootstrapFailed(f"HTTP {status}: {_error_detail(payload)}")
        return parse_budget(payload)

    def fetch_categories(self, budget_id: str, cursor: Optional[int] = None) -> DeltaResult:
        """Fetch categories changed since ``cursor`` (full snapshot when None).

        The returned Delta carries the next cursor; storing it is up to the caller.
        """
        params = {"last_knowledge_of_server": cursor} if cursor is not None else None
        try:
            status, payload = self._get_json(f"/budgets/{quote(budget_id, safe='')}/categories", params)
        except (URLError, OSError, http.client.HTTPException, ValueError) as e:
            return Unavailable(f"could not reach YNAB: {e}")
        if status != 200:
            return Unavailable(_error_detail(payload), status=status)
        return parse_category_list(payload)

