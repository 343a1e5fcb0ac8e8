"""Read-only listing queries.

A ``ListingQuery`` describes a filtered, ordered and capped read of the
``listings`` table in the same vocabulary a hosted row store exposes:
equality, case-insensitive equality, ``ilike``-style substring conditions
that can be OR-ed inside a group, numeric ranges, one sort key and a limit.
The store compiles it to SQL; callers never build SQL themselves.
"""

from dataclasses import dataclass, field
from enum import Enum

LISTING_COLUMNS = frozenset(
    {
        "id",
        "owner_id",
        "material_name",
        "category",
        "condition",
        "listing_type",
        "quantity",
        "price",
        "is_exchange_only",
        "city",
        "location",
        "description",
        "status",
        "views_count",
        "created_at",
        "updated_at",
    }
)


# SQL function registered on every store connection; SQLite's LOWER folds ASCII only.
FOLD_FUNCTION = "casefold"


def fold_text(value: str | None) -> str | None:
    if value is None:
        return None
    return str(value).lower()


class Op(Enum):
    EQ = "eq"
    IEQ = "ieq"
    ILIKE = "ilike"
    GTE = "gte"
    LTE = "lte"


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass(frozen=True)
class Condition:
    column: str
    op: Op
    value: object

    def __post_init__(self) -> None:
        if self.column not in LISTING_COLUMNS:
            raise ValueError(f"Unknown listing column: {self.column}")

    def to_sql(self) -> tuple[str, object]:
        value = self.value.value if isinstance(self.value, Enum) else self.value
        if self.op is Op.EQ:
            return f"{self.column} = ?", value
        if self.op is Op.IEQ:
            return f"{FOLD_FUNCTION}({self.column}) = ?", fold_text(value)
        if self.op is Op.ILIKE:
            pattern = f"%{_escape_like(fold_text(value))}%"
            return f"{FOLD_FUNCTION}({self.column}) LIKE ? ESCAPE '\\'", pattern
        if self.op is Op.GTE:
            return f"{self.column} >= ?", value
        return f"{self.column} <= ?", value


def eq(column: str, value: object) -> Condition:
    return Condition(column, Op.EQ, value)


def ieq(column: str, value: str) -> Condition:
    return Condition(column, Op.IEQ, value)


def ilike(column: str, term: str) -> Condition:
    """Case-insensitive "column contains term"."""
    return Condition(column, Op.ILIKE, term)


def gte(column: str, value: float) -> Condition:
    return Condition(column, Op.GTE, value)


def lte(column: str, value: float) -> Condition:
    return Condition(column, Op.LTE, value)


@dataclass
class ListingQuery:
    filters: list[Condition] = field(default_factory=list)
    groups: list[tuple[Condition, ...]] = field(default_factory=list)
    order_column: str = "created_at"
    descending: bool = True
    max_rows: int | None = None

    def where(self, *conditions: Condition) -> "ListingQuery":
        self.filters.extend(conditions)
        return self

    def any_of(self, *conditions: Condition) -> "ListingQuery":
        if not conditions:
            raise ValueError("An OR group needs at least one condition")
        self.groups.append(tuple(conditions))
        return self

    def order(self, column: str, descending: bool = True) -> "ListingQuery":
        if column not in LISTING_COLUMNS:
            raise ValueError(f"Unknown listing column: {column}")
        self.order_column = column
        self.descending = descending
        return self

    def limit(self, rows: int) -> "ListingQuery":
        if rows <= 0:
            raise ValueError("limit must be positive")
        self.max_rows = rows
        return self

    def _where_clause(self) -> tuple[str, list]:
        clauses: list[str] = []
        params: list = []
        for condition in self.filters:
            sql, value = condition.to_sql()
            clauses.append(sql)
            params.append(value)
        for group in self.groups:
            parts = []
            for condition in group:
                sql, value = condition.to_sql()
                parts.append(sql)
                params.append(value)
            clauses.append("(" + " OR ".join(parts) + ")")
        if not clauses:
            return "", params
        return " WHERE " + " AND ".join(clauses), params

    def to_sql(self) -> tuple[str, list]:
        where, params = self._where_clause()
        direction = "DESC" if self.descending else "ASC"
        sql = (
            f"SELECT * FROM listings{where} "
            f"ORDER BY {self.order_column} {direction}, id {direction}"
        )
        if self.max_rows is not None:
            sql += " LIMIT ?"
            params.append(self.max_rows)
        return sql, params

    def to_count_sql(self) -> tuple[str, list]:
        where, params = self._where_clause()
        return f"SELECT COUNT(*) FROM listings{where}", params
