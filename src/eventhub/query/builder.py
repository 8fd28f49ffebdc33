"""Search, filter, sort and pagination for list endpoints.

List endpoints receive untrusted query-string values. `ListQueryBuilder`
turns them into a `ListQuery`: an ordered list of SQL predicates, an ORDER
BY expression and a LIMIT/OFFSET pair. Values only ever reach the database
as bound parameters; identifiers (sort columns) only ever come from the
builder's allow-list.

## Determinism

Predicates are appended in a fixed order: equality filters in declaration
order, then the search disjunction. The same input therefore always
renders the same SQL text with the same parameter order.

## Example

```python
builder = ListQueryBuilder(
    filters=[("type", Event.type), ("status", Event.status)],
    search_columns=[Event.name, Event.location, Event.description],
    sort_columns={"date": Event.date, "name": Event.name},
    default_sort="date",
    default_limit=6,
)
query = builder.build(request.query_params)

total = await db.scalar(query.count_statement(select_from=Event))
rows = await db.execute(query.page_statement(select(Event)))
```
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Select, and_, func, or_, select, true
from sqlalchemy.engine import Dialect
from sqlalchemy.sql.elements import ColumnElement
from sqlalchemy.sql.expression import FromClause

ASC = "ASC"
DESC = "DESC"
DEFAULT_PAGE = 1
# Largest value a BIGINT LIMIT/OFFSET parameter can hold
MAX_SQL_INT = 2**63 - 1


def coerce_positive_int(value: Any, default: int) -> int:
    """Parse a positive integer, falling back to ``default``.

    Missing, non-numeric and non-positive values all yield the default.
    Values above ``MAX_SQL_INT`` are clamped to it.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        number = int(str(value).strip())
    except ValueError:
        return default
    if number < 1:
        return default
    return min(number, MAX_SQL_INT)


def normalize_direction(value: Any, default: str = ASC) -> str:
    """Map a sort direction to exactly ``ASC`` or ``DESC``.

    A missing value uses ``default``; any other value than ``desc``
    (case-insensitive) is ``ASC``.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    return DESC if str(value).strip().upper() == DESC else ASC


@dataclass(frozen=True)
class Pagination:
    """Pagination metadata returned alongside a page of rows."""

    page: int
    limit: int
    total: int
    total_pages: int
    has_more: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> Pagination:
        total_pages = math.ceil(total / limit) if limit else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_more=page < total_pages,
        )

    def to_dict(self) -> dict[str, int | bool]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "totalPages": self.total_pages,
            "hasMore": self.has_more,
        }


@dataclass
class ListQuery:
    """A compiled set of list parameters.

    ``conditions`` holds the accumulated predicates. `where_clause` joins
    them behind an always-true base predicate, and both the count and the
    page statement use that same clause object, so they render identical
    WHERE text and bound parameters.
    """

    conditions: list[ColumnElement[bool]]
    sort_key: str
    sort_column: ColumnElement[Any]
    direction: str
    page: int
    limit: int
    search: str | None = None
    filters: dict[str, str] = field(default_factory=dict)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def where_clause(self) -> ColumnElement[bool]:
        return and_(true(), *self.conditions)

    @property
    def order_by(self) -> ColumnElement[Any]:
        return self.sort_column.desc() if self.direction == DESC else self.sort_column.asc()

    def count_statement(self, select_from: FromClause | Any) -> Select:
        """``SELECT count(*)`` over ``select_from`` with this query's WHERE."""
        return select(func.count()).select_from(select_from).where(self.where_clause)

    def page_statement(self, statement: Select) -> Select:
        """Apply WHERE, ORDER BY, LIMIT and OFFSET to a row query."""
        return (
            statement.where(self.where_clause)
            .order_by(self.order_by)
            .limit(self.limit)
            .offset(self.offset)
        )

    def pagination(self, total: int) -> Pagination:
        return Pagination.build(self.page, self.limit, total)


class ListQueryBuilder:
    """Builds `ListQuery` objects for one list endpoint.

    Args:
        filters: ``(parameter name, column)`` pairs for equality filters,
            applied in this order
        search_columns: Text columns matched by the ``search`` parameter
        sort_columns: Allow-list mapping ``sort`` values to columns
        default_sort: Key of ``sort_columns`` used for unknown values
        default_order: Direction used when ``order`` is missing
        default_limit: Page size used when ``limit`` is missing or invalid
        max_limit: Optional cap on the page size. None means no cap; callers
            exposing the endpoint to untrusted input should set one.
    """

    def __init__(
        self,
        *,
        filters: Sequence[tuple[str, ColumnElement[Any]]] = (),
        search_columns: Sequence[ColumnElement[Any]] = (),
        sort_columns: Mapping[str, ColumnElement[Any]],
        default_sort: str,
        default_order: str = ASC,
        default_limit: int = 20,
        max_limit: int | None = None,
    ):
        if default_sort not in sort_columns:
            raise ValueError(f"Default sort {default_sort!r} is not an allowed column")
        if default_limit < 1:
            raise ValueError("default_limit must be positive")

        self.filters = list(filters)
        self.search_columns = list(search_columns)
        self.sort_columns = dict(sort_columns)
        self.default_sort = default_sort
        self.default_order = normalize_direction(default_order)
        self.default_limit = default_limit
        self.max_limit = max_limit

    def build(
        self,
        params: Mapping[str, Any],
        scope: Sequence[ColumnElement[bool]] = (),
    ) -> ListQuery:
        """Translate raw request parameters into a `ListQuery`.

        ``scope`` predicates come from the caller, not the request (for
        example "favorites of the current user") and are applied first.
        """
        conditions: list[ColumnElement[bool]] = list(scope)
        applied: dict[str, str] = {}

        for name, column in self.filters:
            value = _clean(params.get(name))
            if value:
                conditions.append(column == value)
                applied[name] = value

        search = _clean(params.get("search"))
        if search and self.search_columns:
            pattern = f"%{search}%"
            # One bind parameter per column; positional styles cannot reuse one
            conditions.append(or_(*(column.ilike(pattern) for column in self.search_columns)))

        sort_key = _clean(params.get("sort"))
        if sort_key not in self.sort_columns:
            sort_key = self.default_sort

        limit = coerce_positive_int(params.get("limit"), self.default_limit)
        if self.max_limit is not None:
            limit = min(limit, self.max_limit)

        # Keep the offset bindable; pages past the end are empty either way
        page = min(
            coerce_positive_int(params.get("page"), DEFAULT_PAGE),
            MAX_SQL_INT // limit + 1,
        )

        return ListQuery(
            conditions=conditions,
            sort_key=sort_key,
            sort_column=self.sort_columns[sort_key],
            direction=normalize_direction(params.get("order"), self.default_order),
            page=page,
            limit=limit,
            search=search or None,
            filters=applied,
        )


def render_positional(statement: Select, dialect: Dialect) -> tuple[str, list[Any]]:
    """Render a statement for a positional-parameter dialect.

    Returns the SQL text with the dialect's placeholders (``?`` for SQLite,
    ``$1, $2, ...`` for asyncpg) and the parameter values in placeholder
    order. Useful for logging and tests; execution goes through SQLAlchemy.
    """
    compiled = statement.compile(dialect=dialect)
    names = compiled.positiontup or []
    params = compiled.params
    return str(compiled), [params[name] for name in names]


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
