from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping

from .expression import copy_predicate


class QueryPartName(str, Enum):
    SELECT = "select"
    DISTINCT = "distinct"
    FROM = "from"
    JOIN = "join"
    SET = "set"
    WHERE = "where"
    GROUP_BY = "group_by"
    HAVING = "having"
    ORDER_BY = "order_by"
    VALUES = "values"
    LIMIT = "limit"
    OFFSET = "offset"


@dataclass(frozen=True)
class OrderByItem:
    expr: str
    direction: str = "ASC"

    def render(self) -> str:
        return f"{self.expr} {self.direction}"


@dataclass(frozen=True)
class UpdateSet:
    column: str
    value: str

    def render(self) -> str:
        return f"{self.column} = {self.value}"


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z])(?=[A-Z])")


def normalize_part_name(name: Any) -> QueryPartName:
    """Accept ``QueryPartName`` members as well as ``"orderBy"``/``"order_by"`` spellings."""
    if isinstance(name, QueryPartName):
        return name
    if not isinstance(name, str):
        raise TypeError(f"Query part name must be a string, got {type(name).__name__}")
    key = _CAMEL_BOUNDARY.sub("_", name.strip()).lower()
    try:
        return QueryPartName(key)
    except ValueError:
        known = ", ".join(p.value for p in QueryPartName)
        raise ValueError(f"Unknown query part '{name}'. Known parts: {known}") from None


def empty_part(name: QueryPartName) -> Any:
    if name is QueryPartName.DISTINCT:
        return False
    if name in (QueryPartName.WHERE, QueryPartName.HAVING, QueryPartName.LIMIT, QueryPartName.OFFSET):
        return None
    if name is QueryPartName.VALUES:
        return {}
    return []


def empty_parts() -> Dict[QueryPartName, Any]:
    return {name: empty_part(name) for name in QueryPartName}


def is_empty_part(value: Any) -> bool:
    return value is None or value is False or (hasattr(value, "__len__") and len(value) == 0)


def copy_part(name: QueryPartName, value: Any) -> Any:
    if name in (QueryPartName.WHERE, QueryPartName.HAVING):
        return copy_predicate(value)
    if name is QueryPartName.JOIN:
        return [join.copy() for join in value]
    if isinstance(value, dict):
        return dict(value)
    if isinstance(value, list):
        # Remaining list items are strings or frozen records.
        return list(value)
    return value


def copy_parts(parts: Mapping[QueryPartName, Any]) -> Dict[QueryPartName, Any]:
    return {name: copy_part(name, value) for name, value in parts.items()}


# Parts a statement of each shape can carry; the rest are cleared on a kind switch.
_COMMON: FrozenSet[QueryPartName] = frozenset({QueryPartName.FROM, QueryPartName.LIMIT, QueryPartName.OFFSET})

SHAPE_PARTS: Dict[str, FrozenSet[QueryPartName]] = {
    "select": _COMMON
    | {
        QueryPartName.SELECT,
        QueryPartName.DISTINCT,
        QueryPartName.JOIN,
        QueryPartName.WHERE,
        QueryPartName.GROUP_BY,
        QueryPartName.HAVING,
        QueryPartName.ORDER_BY,
    },
    "insert": _COMMON | {QueryPartName.VALUES},
    "update": _COMMON | {QueryPartName.SET, QueryPartName.WHERE},
    "delete": _COMMON | {QueryPartName.WHERE},
}


def incompatible_parts(shape: str, parts: Mapping[QueryPartName, Any]) -> List[QueryPartName]:
    allowed = SHAPE_PARTS.get(shape)
    if allowed is None:
        return []
    return [name for name, value in parts.items() if name not in allowed and not is_empty_part(value)]


def flatten_expressions(items: Iterable[Any]) -> List[str]:
    """Flatten ``("a", "b")`` and ``(["a", "b"],)`` into ``["a", "b"]``."""
    flat: List[str] = []
    for item in items:
        if isinstance(item, (list, tuple)):
            flat.extend(flatten_expressions(item))
        elif item is None or item == "":
            continue
        elif isinstance(item, str):
            flat.append(item)
        else:
            raise TypeError(f"Expected SQL expression text, got {type(item).__name__}")
    return flat


__all__ = [
    "QueryPartName",
    "OrderByItem",
    "UpdateSet",
    "SHAPE_PARTS",
    "normalize_part_name",
    "empty_part",
    "empty_parts",
    "is_empty_part",
    "copy_part",
    "copy_parts",
    "incompatible_parts",
    "flatten_expressions",
]
