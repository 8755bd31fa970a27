"""
repositories/query_builder.py
-----------------------------
Pure helpers that assemble parameterized SQL for collection queries.

Structure (columns, sort expressions, direction keywords) only ever comes
from allow-lists owned by the repositories; every caller-supplied value
travels as a bound `%s` parameter.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union

from errors import InvalidOptions
from models.options import CollectionOptions
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Clause:
    """A SQL boolean fragment and the parameters its placeholders bind to."""
    sql: str
    params: tuple = ()

    def and_(self, other: Optional["Clause"]) -> "Clause":
        """Both fragments must hold; each side is parenthesized so OR-lists stay grouped."""
        if other is None:
            return self
        return Clause(f"({self.sql}) AND ({other.sql})", self.params + other.params)


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so the value matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_filter_clause(fields: Union[str, Sequence[str]], pattern: str) -> Clause:
    """
    Case-insensitive substring match of `pattern` against one or more fields.

    Args:
        fields: SQL column expression(s) from a repository allow-list.
        pattern: Caller text; bound once per field, never put in the SQL.

    Returns:
        A Clause OR-ing ``lower(field) LIKE lower(%s)`` over the fields.
    """
    if isinstance(fields, str):
        fields = [fields]
    if not fields:
        raise ValueError("build_filter_clause needs at least one field")
    wrapped = f"%{escape_like(pattern)}%"
    sql = " OR ".join(f"lower({f}) LIKE lower(%s)" for f in fields)
    return Clause(sql, tuple(wrapped for _ in fields))


def build_equals_clause(field: str, value: Any) -> Clause:
    """``field = %s`` bound to `value`."""
    return Clause(f"{field} = %s", (value,))


def build_collection_query(
    base_select: str,
    sortable: Mapping[str, str],
    options: CollectionOptions,
    where: Optional[Clause] = None,
    group_by: Optional[str] = None,
    tie_break: str = "id",
) -> tuple[str, list]:
    """
    Build a filtered, sorted, paginated query.

    Args:
        base_select: Fixed ``SELECT ... FROM ... JOIN ...`` text.
        sortable: Allow-list mapping public sort names to SQL expressions.
        options: Pagination and sort options.
        where: Optional pre-built WHERE fragment.
        group_by: Optional fixed GROUP BY expression list.
        tie_break: Key in `sortable` used to order rows with equal sort values.

    Returns:
        (sql, params) ready for ``cursor.execute``.

    Raises:
        InvalidOptions: On bad pagination, direction, or an unknown sort field.
    """
    options.validate()
    if options.sort not in sortable:
        raise InvalidOptions(
            f"Cannot sort by {options.sort!r}; allowed: {', '.join(sorted(sortable))}",
            {"sort": options.sort, "allowed": sorted(sortable)},
        )

    parts = [base_select.strip()]
    params: list = []
    if where is not None:
        parts.append(f"WHERE {where.sql}")
        params.extend(where.params)
    if group_by:
        parts.append(f"GROUP BY {group_by}")

    order_by = f"ORDER BY {sortable[options.sort]} {options.direction}"
    if options.sort != tie_break:
        order_by += f", {sortable[tie_break]} ASC"
    parts.append(order_by)

    parts.append("LIMIT %s OFFSET %s")
    params.extend([options.per_page, options.offset])

    sql = "\n".join(parts) + ";"
    logger.debug(f"Built collection query: {sql} {params}")
    return sql, params
