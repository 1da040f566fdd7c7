"""Cross-table search over one tenant's customers, inventory and work orders."""

from __future__ import annotations

import re
import sqlite3
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

from pipeyard.domain import SearchSummary
from pipeyard.middleware import HttpError

_SEPARATOR = " • "
_INTEGER = re.compile(r"[+-]?\d+")


@dataclass
class RankedResult:
    """One search hit with a relevance score used for ranking."""

    type: str
    id: Any
    title: str
    detail: str
    data: dict[str, Any] = field(default_factory=dict)
    score: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        result = {
            "type": self.type,
            "id": self.id,
            "title": self.title,
            "detail": self.detail,
            "data": dict(self.data),
        }
        if self.score:
            result["score"] = self.score
        return result


@dataclass
class SearchResponse:
    """The answer to a global search within one tenant."""

    tenant_id: str
    query: str
    results: list[RankedResult] = field(default_factory=list)
    summary: SearchSummary = field(default_factory=SearchSummary)

    @property
    def count(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tenant": self.tenant_id,
            "query": self.query,
            "results": [result.to_dict() for result in self.results],
            "count": self.count,
            "summary": self.summary.to_dict(),
        }


def sanitize_search_term(term: str) -> str:
    """Cut a search term to 100 characters and strip SQL-significant sequences."""
    term = term[:100]
    term = term.replace("'", "''")
    for fragment in (";", "--", "/*", "*/"):
        term = term.replace(fragment, "")
    return term.strip()


def _atoi(value: Optional[str]) -> Optional[int]:
    if value is None or not _INTEGER.fullmatch(value):
        return None
    return int(value)


def validate_pagination(limit: Optional[str], offset: Optional[str]) -> tuple[int, int]:
    """Turn paging parameters into a limit of 1..1000 (default 50) and an offset >= 0."""
    limit_value = _atoi(limit)
    if limit_value is None or limit_value < 1:
        limit_value = 50
    limit_value = min(limit_value, 1000)
    offset_value = _atoi(offset)
    if offset_value is None or offset_value < 0:
        offset_value = 0
    return limit_value, offset_value


def calculate_relevance_score(text: str, query: str) -> float:
    """Score how well text matches a query: exact, prefix, substring and whole word."""
    if not text or not query:
        return 0.0
    text = text.lower()
    query = query.lower()
    score = 0.0
    if text == query:
        score += 10.0
    if text.startswith(query):
        score += 5.0
    if query in text:
        score += 2.0
    if f" {query} " in f" {text} ":
        score += 3.0
    return score


def sort_results_by_relevance(results: list[RankedResult]) -> None:
    """Order results by descending score in place, keeping ties in their order."""
    results.sort(key=lambda result: result.score, reverse=True)


def _rows(conn: sqlite3.Connection, sql: str, params: Any) -> list[tuple]:
    try:
        return conn.execute(sql, params).fetchall()
    except sqlite3.Error:
        return []


def _patterns(tenant_id: str, query: str, limit: int) -> dict[str, Any]:
    return {
        "tenant": tenant_id,
        "contains": f"%{query}%",
        "prefix": f"{query}%",
        "limit": limit,
    }


_CUSTOMER_SQL = """
SELECT customer_id, customer, COALESCE(contact, ''), COALESCE(billing_city, ''),
       COALESCE(billing_state, ''), COALESCE(phone, ''), COALESCE(email, '')
FROM customers
WHERE tenant_id = :tenant AND NOT deleted
  AND (customer LIKE :contains OR contact LIKE :contains OR billing_city LIKE :contains
       OR phone LIKE :contains OR email LIKE :contains)
ORDER BY CASE
           WHEN customer LIKE :prefix THEN 1
           WHEN contact LIKE :prefix THEN 2
           ELSE 3
         END,
         customer
LIMIT :limit
"""


def search_customers(
    conn: sqlite3.Connection, tenant_id: str, query: str, limit: int
) -> list[RankedResult]:
    """Find customers of a tenant by name, contact, city, phone or e-mail."""
    results = []
    for row in _rows(conn, _CUSTOMER_SQL, _patterns(tenant_id, query, limit)):
        customer_id, customer, contact, city, state, phone, email = row
        if customer is None:
            continue
        details = []
        if contact:
            details.append(f"Contact: {contact}")
        if city and state:
            details.append(f"Location: {city}, {state}")
        if phone:
            details.append(f"Phone: {phone}")
        detail = _SEPARATOR.join(details) or "Oil & Gas Customer"
        score = calculate_relevance_score(customer, query) + calculate_relevance_score(contact, query) * 0.8
        results.append(
            RankedResult(
                type="customer",
                id=customer_id,
                title=customer,
                detail=detail,
                score=score,
                data={
                    "customer_id": customer_id,
                    "customer": customer,
                    "contact": contact,
                    "city": city,
                    "state": state,
                    "phone": phone,
                    "email": email,
                },
            )
        )
    return results


_INVENTORY_SQL = """
SELECT id, COALESCE(work_order, ''), customer, COALESCE(size, ''), COALESCE(grade, ''),
       COALESCE(joints, 0), COALESCE(location, ''), COALESCE(date_in, '')
FROM inventory
WHERE tenant_id = :tenant AND NOT deleted
  AND (work_order LIKE :contains OR customer LIKE :contains OR size LIKE :contains
       OR grade LIKE :contains OR notes LIKE :contains OR location LIKE :contains)
ORDER BY CASE
           WHEN work_order LIKE :prefix THEN 1
           WHEN customer LIKE :prefix THEN 2
           WHEN size LIKE :prefix OR grade LIKE :prefix THEN 3
           ELSE 4
         END,
         date_in DESC
LIMIT :limit
"""


def search_inventory(
    conn: sqlite3.Connection, tenant_id: str, query: str, limit: int
) -> list[RankedResult]:
    """Find inventory of a tenant by work order, customer, size, grade, notes or location."""
    results = []
    for row in _rows(conn, _INVENTORY_SQL, _patterns(tenant_id, query, limit)):
        item_id, work_order, customer, size, grade, joints, location, date_in = row
        if customer is None:
            continue
        title = f"WO: {work_order}" if work_order else f"Inventory #{item_id}"
        details = [customer]
        if joints > 0:
            details.append(f"{joints} joints")
        if size and grade:
            details.append(f"{size} {grade}")
        if location:
            details.append(f"@ {location}")
        score = (
            calculate_relevance_score(work_order, query)
            + calculate_relevance_score(customer, query) * 0.8
            + calculate_relevance_score(f"{size} {grade}", query) * 0.6
        )
        results.append(
            RankedResult(
                type="inventory",
                id=item_id,
                title=title,
                detail=_SEPARATOR.join(details),
                score=score,
                data={
                    "id": item_id,
                    "work_order": work_order,
                    "customer": customer,
                    "size": size,
                    "grade": grade,
                    "joints": joints,
                    "location": location,
                    "date_in": date_in,
                },
            )
        )
    return results


_WORK_ORDER_SQL = """
SELECT work_order, customer, COUNT(*) AS item_count, SUM(joints) AS total_joints,
       MAX(date_in) AS latest_date
FROM inventory
WHERE tenant_id = :tenant AND NOT deleted AND work_order IS NOT NULL AND work_order != ''
  AND (work_order LIKE :contains OR customer LIKE :contains)
GROUP BY work_order, customer
ORDER BY CASE
           WHEN work_order LIKE :prefix THEN 1
           WHEN customer LIKE :prefix THEN 2
           ELSE 3
         END,
         latest_date DESC
LIMIT :limit
"""

_LOCATIONS_SQL = """
SELECT DISTINCT location FROM inventory
WHERE tenant_id = ? AND NOT deleted AND work_order = ? AND customer = ?
  AND location IS NOT NULL
ORDER BY location
"""


def search_work_orders(
    conn: sqlite3.Connection, tenant_id: str, query: str, limit: int
) -> list[RankedResult]:
    """Find work orders of a tenant, aggregated from inventory, by number or customer."""
    results = []
    for row in _rows(conn, _WORK_ORDER_SQL, _patterns(tenant_id, query, limit)):
        work_order, customer, item_count, total_joints, latest_date = row
        if customer is None or total_joints is None or latest_date is None:
            continue
        locations = [
            location
            for (location,) in _rows(conn, _LOCATIONS_SQL, (tenant_id, work_order, customer))
        ]
        if not locations:
            continue
        details = [customer, f"{item_count} items"]
        if total_joints > 0:
            details.append(f"{total_joints} joints")
        if latest_date:
            details.append(f"Latest: {latest_date}")
        score = calculate_relevance_score(work_order, query) + calculate_relevance_score(customer, query) * 0.7
        results.append(
            RankedResult(
                type="work_order",
                id=work_order,
                title=f"WO: {work_order}",
                detail=_SEPARATOR.join(details),
                score=score,
                data={
                    "work_order": work_order,
                    "customer": customer,
                    "item_count": item_count,
                    "total_joints": total_joints,
                    "latest_date": latest_date,
                    "locations": ", ".join(locations),
                },
            )
        )
    return results


_SEARCHERS: dict[str, Callable[[sqlite3.Connection, str, str, int], list[RankedResult]]] = {
    "customers": search_customers,
    "inventory": search_inventory,
    "work_orders": search_work_orders,
}


def global_search(
    conn: sqlite3.Connection, tenant_id: str, params: Mapping[str, str]
) -> SearchResponse:
    """Search a tenant's data using the query parameters q, type and limit.

    Raises HttpError when q is missing or shorter than two characters.
    """
    query = (params.get("q") or "").strip()
    if not query:
        raise HttpError(
            400,
            {
                "error": "Search query 'q' parameter required",
                "message": "Provide a search term in the 'q' parameter",
                "example": "/api/v1/search?q=oil",
            },
        )
    if len(query) < 2:
        raise HttpError(
            400,
            {
                "error": "Search query too short",
                "message": "Search query must be at least 2 characters",
            },
        )

    limit = _atoi(params.get("limit", "50")) or 0
    limit = min(limit, 200)
    if limit < 1:
        limit = 50

    query = sanitize_search_term(query)
    search_type = params.get("type", "")
    summary = SearchSummary()
    results: list[RankedResult] = []

    if search_type in _SEARCHERS:
        hits = _SEARCHERS[search_type](conn, tenant_id, query, limit)
        results.extend(hits)
        setattr(summary, search_type, len(hits))
    else:
        for name, searcher in _SEARCHERS.items():
            hits = searcher(conn, tenant_id, query, limit // 3)
            results.extend(hits)
            setattr(summary, name, len(hits))

    summary.total = len(results)
    if len(results) > 1:
        sort_results_by_relevance(results)

    return SearchResponse(tenant_id=tenant_id, query=query, results=results, summary=summary)