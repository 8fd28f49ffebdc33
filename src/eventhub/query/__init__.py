"""Query building for paginated, filtered and sorted list endpoints."""

from eventhub.query.builder import (
    ASC,
    DESC,
    MAX_SQL_INT,
    ListQuery,
    ListQueryBuilder,
    Pagination,
    coerce_positive_int,
    normalize_direction,
    render_positional,
)

__all__ = [
    "ASC",
    "DESC",
    "MAX_SQL_INT",
    "ListQuery",
    "ListQueryBuilder",
    "Pagination",
    "coerce_positive_int",
    "normalize_direction",
    "render_positional",
]
